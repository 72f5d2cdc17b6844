"""Client for the remote swing data service (PostgREST-style REST API)."""

import logging
import time
from typing import Any, Dict, List, Optional

import requests

from hitsync.devices.base import DeviceKind

logger = logging.getLogger(__name__)


class SwingServiceClient:
    """
    Reads device swing rows for an athlete from the remote data service.

    Tables are read page by page so result sets larger than the service's
    row limit come back complete. Requests are rate limited and retried
    with linear backoff.
    """

    BLAST_SWINGS_TABLE = "blast_swings"
    HITTRAX_SESSIONS_TABLE = "hittrax_sessions"
    HITTRAX_SWINGS_TABLE = "hittrax_swings"
    FULLSWING_SESSIONS_TABLE = "fullswing_sessions"
    FULLSWING_SWINGS_TABLE = "fullswing_swings"

    BLAST_COLUMNS = (
        "id,recorded_date,recorded_time,created_at_utc,bat_speed,attack_angle,"
        "on_plane_efficiency,peak_hand_speed,time_to_contact,power"
    )
    HITTRAX_COLUMNS = (
        "id,session_id,swing_timestamp,exit_velocity,distance,launch_angle,"
        "horizontal_angle,pitch_velocity,spray_chart_x,spray_chart_z"
    )
    FULLSWING_COLUMNS = (
        "id,session_id,swing_date,swing_time,bat_speed,exit_velocity,launch_angle,"
        "spray_angle,distance,smash_factor,squared_up,pitch_speed"
    )

    # Session ids per "in.(...)" filter, keeps URLs short
    ID_CHUNK_SIZE = 100

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        page_size: int = 1000,
        request_delay: float = 0.0,
        max_retries: int = 3,
        timeout: int = 30,
    ):
        """
        Initialize the service client.

        Args:
            base_url: REST endpoint root (e.g. ``https://host/rest/v1``).
            api_key: API key sent as ``apikey`` and bearer token.
            page_size: Rows requested per page.
            request_delay: Minimum delay between requests in seconds.
            max_retries: Maximum number of attempts per request.
            timeout: Request timeout in seconds.
        """
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")

        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self.request_delay = request_delay
        self.max_retries = max_retries
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if api_key:
            self.session.headers.update({
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
            })
        self._last_request_time: Optional[float] = None

    def _rate_limit(self) -> None:
        """Enforce rate limiting between requests."""
        if self._last_request_time is not None and self.request_delay > 0:
            elapsed = time.time() - self._last_request_time
            if elapsed < self.request_delay:
                time.sleep(self.request_delay - elapsed)
        self._last_request_time = time.time()

    def _make_request(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        """
        Make a GET request with retry logic and rate limiting.

        Args:
            url: URL to request.
            params: Query parameters.

        Returns:
            Response object.

        Raises:
            requests.RequestException: If request fails after all retries.
        """
        self._rate_limit()

        for attempt in range(self.max_retries):
            try:
                response = self.session.get(url, params=params, timeout=self.timeout)
                response.raise_for_status()
                return response
            except requests.RequestException as e:
                logger.warning(
                    f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}"
                )
                if attempt < self.max_retries - 1:
                    time.sleep(self.request_delay * (attempt + 1))
                else:
                    raise

        raise requests.RequestException(f"No attempts made for {url}")

    def fetch_all(
        self,
        table: str,
        select: str,
        filters: Optional[Dict[str, str]] = None,
        order: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Read every row of a filtered table, one page at a time.

        Args:
            table: Table name.
            select: Comma-separated column list.
            filters: Column -> PostgREST filter expression (e.g. ``eq.42``).
            order: Order expression (e.g. ``recorded_date.desc``).

        Returns:
            All matching rows.

        Raises:
            requests.RequestException: If a page cannot be fetched.
            ValueError: If the service returns something other than a row list.
        """
        url = f"{self.base_url}/{table}"
        rows: List[Dict[str, Any]] = []
        offset = 0

        while True:
            params: Dict[str, Any] = {"select": select, **(filters or {})}
            if order:
                params["order"] = order
            params["limit"] = self.page_size
            params["offset"] = offset

            page = self._make_request(url, params).json()
            if not isinstance(page, list):
                raise ValueError(f"Unexpected response from {table}: {type(page).__name__}")

            rows.extend(page)
            if len(page) < self.page_size:
                break
            offset += self.page_size

        logger.debug(f"Fetched {len(rows)} rows from {table}")
        return rows

    def _fetch_by_sessions(
        self,
        sessions_table: str,
        swings_table: str,
        select: str,
        athlete_id: str,
    ) -> List[Dict[str, Any]]:
        """Read swings belonging to an athlete's device sessions."""
        sessions = self.fetch_all(
            sessions_table,
            "id,session_date",
            filters={"athlete_id": f"eq.{athlete_id}"},
        )
        session_ids = [str(s["id"]) for s in sessions if s.get("id") is not None]

        swings: List[Dict[str, Any]] = []
        for start in range(0, len(session_ids), self.ID_CHUNK_SIZE):
            chunk = session_ids[start:start + self.ID_CHUNK_SIZE]
            swings.extend(
                self.fetch_all(
                    swings_table,
                    select,
                    filters={"session_id": f"in.({','.join(chunk)})"},
                    order="id.asc",
                )
            )
        return swings

    def fetch_blast_swings(self, athlete_id: str) -> List[Dict[str, Any]]:
        """Get all bat-sensor swings for an athlete."""
        return self.fetch_all(
            self.BLAST_SWINGS_TABLE,
            self.BLAST_COLUMNS,
            filters={"athlete_id": f"eq.{athlete_id}"},
            order="id.asc",
        )

    def fetch_hittrax_swings(self, athlete_id: str) -> List[Dict[str, Any]]:
        """Get all ball-tracker swings across an athlete's sessions."""
        return self._fetch_by_sessions(
            self.HITTRAX_SESSIONS_TABLE,
            self.HITTRAX_SWINGS_TABLE,
            self.HITTRAX_COLUMNS,
            athlete_id,
        )

    def fetch_fullswing_swings(self, athlete_id: str) -> List[Dict[str, Any]]:
        """Get all combined-unit swings across an athlete's sessions."""
        return self._fetch_by_sessions(
            self.FULLSWING_SESSIONS_TABLE,
            self.FULLSWING_SWINGS_TABLE,
            self.FULLSWING_COLUMNS,
            athlete_id,
        )

    def fetch_streams(self, athlete_id: str) -> Dict[DeviceKind, List[Dict[str, Any]]]:
        """
        Get every device stream for an athlete.

        Args:
            athlete_id: Athlete identifier in the data service.

        Returns:
            Device kind -> device-native rows.
        """
        logger.info(f"Fetching swing streams for athlete {athlete_id}")
        streams = {
            DeviceKind.BLAST: self.fetch_blast_swings(athlete_id),
            DeviceKind.HITTRAX: self.fetch_hittrax_swings(athlete_id),
            DeviceKind.FULLSWING: self.fetch_fullswing_swings(athlete_id),
        }
        logger.info(
            "Fetched "
            + ", ".join(f"{len(rows)} {kind.value}" for kind, rows in streams.items())
            + " swings"
        )
        return streams

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
        logger.debug("Service client session closed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
        return False
