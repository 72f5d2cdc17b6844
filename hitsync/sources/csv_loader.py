"""Load device CSV exports into device-native rows."""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Union

import pandas as pd

logger = logging.getLogger(__name__)


def normalize_column(name: str) -> str:
    """Lower-case a header and replace runs of spaces/dashes with underscores."""
    return re.sub(r"[\s\-]+", "_", str(name).strip().lower())


def dataframe_to_rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """
    Convert a DataFrame to a list of flat row dicts.

    Column names are normalized and NaN values become None.

    Args:
        df: DataFrame of device rows.

    Returns:
        List of row dictionaries.
    """
    df = df.rename(columns=normalize_column)
    rows: List[Dict[str, Any]] = []
    for record in df.to_dict(orient="records"):
        rows.append({
            key: (None if pd.isna(value) else value)
            for key, value in record.items()
        })
    return rows


def load_device_csv(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Read a device CSV export.

    All columns are read as text so timestamp strings keep their exact
    format; numeric coercion happens when rows become swings.

    Args:
        path: Path to the CSV file.

    Returns:
        List of row dictionaries.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV export not found: {csv_path}")

    df = pd.read_csv(csv_path, dtype=str, keep_default_na=True)
    rows = dataframe_to_rows(df)
    logger.info(f"Loaded {len(rows)} rows from {csv_path}")
    return rows
