"""Data sources for device swing rows."""

from hitsync.sources.csv_loader import load_device_csv
from hitsync.sources.service_client import SwingServiceClient

__all__ = ["load_device_csv", "SwingServiceClient"]
