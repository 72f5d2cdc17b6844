"""Pipeline orchestrator: normalize, match, aggregate and derive."""

from contextlib import ExitStack
from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from hitsync.database.operations import SwingRepository
from hitsync.database.schema import DEFAULT_DATABASE_URL, get_session, init_db
from hitsync.devices import DeviceKind, NormalizedSwing, normalize_swings, to_raw_swings
from hitsync.reconcile.matcher import DEFAULT_WINDOW_SECONDS, MatchedPair, match_swings, singleton_pairs
from hitsync.reconcile.metrics import (
    DEFAULT_HARD_HIT_THRESHOLD,
    DEFAULT_SQUARED_UP_THRESHOLD,
    compute_session_metrics,
)
from hitsync.reconcile.sessions import Session, build_sessions
from hitsync.sources.csv_loader import load_device_csv
from hitsync.sources.service_client import SwingServiceClient
from hitsync.utils.logging_config import get_logger

logger = get_logger(__name__)

Rows = List[Dict[str, Any]]


@dataclass
class PipelineConfig:
    """
    Configuration for the reconciliation pipeline.

    Attributes:
        window_seconds: Maximum clock difference for two swings to match.
        hard_hit_threshold: Exit velocity (mph) counted as a hard hit.
        squared_up_threshold: Per-swing squared-up rate counted as squared up.
        timezone: IANA zone for offset-free timestamps; runtime local if None.
        database_url: Local database connection URL.
        service_url: Root URL of the remote swing data service.
        service_api_key: API key for the remote service.
        page_size: Rows per page when reading the remote service.
        request_delay: Minimum delay between remote requests in seconds.
        max_retries: Attempts per remote request.
        timeout: Remote request timeout in seconds.
    """
    window_seconds: float = DEFAULT_WINDOW_SECONDS
    hard_hit_threshold: float = DEFAULT_HARD_HIT_THRESHOLD
    squared_up_threshold: float = DEFAULT_SQUARED_UP_THRESHOLD
    timezone: Optional[str] = None
    database_url: str = DEFAULT_DATABASE_URL
    service_url: Optional[str] = None
    service_api_key: Optional[str] = None
    page_size: int = 1000
    request_delay: float = 0.0
    max_retries: int = 3
    timeout: int = 30
    tz: Optional[tzinfo] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        if self.window_seconds < 0:
            raise ValueError(f"window_seconds must be non-negative, got {self.window_seconds}")
        if self.hard_hit_threshold <= 0:
            raise ValueError(f"hard_hit_threshold must be positive, got {self.hard_hit_threshold}")
        if self.squared_up_threshold <= 0:
            raise ValueError(f"squared_up_threshold must be positive, got {self.squared_up_threshold}")
        if self.page_size <= 0:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")

        if self.timezone:
            try:
                self.tz = ZoneInfo(self.timezone)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ValueError(f"Unknown timezone: {self.timezone}") from e

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "PipelineConfig":
        """
        Build from the parsed YAML configuration.

        Missing sections and keys fall back to the defaults.

        Args:
            config: Parsed config file contents.

        Returns:
            Validated PipelineConfig.
        """
        reconciliation = config.get("reconciliation") or {}
        database = config.get("database") or {}
        service = config.get("service") or {}

        return cls(
            window_seconds=float(reconciliation.get("window_seconds", DEFAULT_WINDOW_SECONDS)),
            hard_hit_threshold=float(
                reconciliation.get("hard_hit_threshold", DEFAULT_HARD_HIT_THRESHOLD)
            ),
            squared_up_threshold=float(
                reconciliation.get("squared_up_threshold", DEFAULT_SQUARED_UP_THRESHOLD)
            ),
            timezone=reconciliation.get("timezone"),
            database_url=database.get("url", DEFAULT_DATABASE_URL),
            service_url=service.get("url"),
            service_api_key=service.get("api_key"),
            page_size=int(service.get("page_size", 1000)),
            request_delay=float(service.get("request_delay_seconds", 0.0)),
            max_retries=int(service.get("max_retries", 3)),
            timeout=int(service.get("timeout", 30)),
        )


@dataclass
class ReconciliationResult:
    """
    Output of one reconciliation run.

    Attributes:
        sessions: Sessions sorted by date, most recent first.
        pairs: Every pair produced by matching, plus combined-unit singletons.
        unmatchable: Swings whose timestamp could not be resolved.
    """
    sessions: List[Session] = field(default_factory=list)
    pairs: List[MatchedPair] = field(default_factory=list)
    unmatchable: List[NormalizedSwing] = field(default_factory=list)

    @property
    def paired_count(self) -> int:
        return sum(1 for pair in self.pairs if pair.is_paired)

    def to_dict(self, limit: Optional[int] = None) -> Dict[str, Any]:
        """
        Convert to dictionary format.

        Args:
            limit: Only include the most recent ``limit`` sessions.
        """
        sessions = self.sessions if limit is None else self.sessions[:limit]
        return {
            "session_count": len(self.sessions),
            "paired_swings_count": self.paired_count,
            "unmatchable_count": len(self.unmatchable),
            "sessions": [session.to_dict() for session in sessions],
            "unmatchable": [swing.to_dict() for swing in self.unmatchable],
        }


class ReconciliationPipeline:
    """
    End-to-end swing reconciliation.

    Normalizes each device stream, pairs bat-sensor swings with ball-tracker
    swings, buckets everything into calendar-day sessions and derives
    session metrics. Rows can come from CSV exports, the local database or
    the remote data service.
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        """
        Initialize the pipeline.

        Args:
            config: Pipeline configuration. Uses defaults if not provided.
        """
        self.config = config or PipelineConfig()

        # Initialize components (lazy loading)
        self._client: Optional[SwingServiceClient] = None
        self._repository: Optional[SwingRepository] = None
        self._resources = ExitStack()

    @property
    def client(self) -> SwingServiceClient:
        """Get or create the remote service client."""
        if self._client is None:
            if not self.config.service_url:
                raise ValueError("No service URL configured (service.url)")
            self._client = SwingServiceClient(
                base_url=self.config.service_url,
                api_key=self.config.service_api_key,
                page_size=self.config.page_size,
                request_delay=self.config.request_delay,
                max_retries=self.config.max_retries,
                timeout=self.config.timeout,
            )
        return self._client

    @property
    def repository(self) -> SwingRepository:
        """Get or create the local swing repository."""
        if self._repository is None:
            init_db(self.config.database_url)
            session = self._resources.enter_context(get_session())
            self._repository = SwingRepository(session)
        return self._repository

    def reconcile(
        self,
        blast_rows: Iterable[Dict[str, Any]],
        hittrax_rows: Iterable[Dict[str, Any]],
        fullswing_rows: Optional[Iterable[Dict[str, Any]]] = None,
    ) -> ReconciliationResult:
        """
        Reconcile device rows into sessions.

        Args:
            blast_rows: Bat-sensor rows.
            hittrax_rows: Ball-tracker rows.
            fullswing_rows: Combined-unit rows, if any.

        Returns:
            ReconciliationResult with sessions most recent first.
        """
        tz = self.config.tz

        blast = normalize_swings(to_raw_swings(DeviceKind.BLAST, blast_rows), tz)
        hittrax = normalize_swings(to_raw_swings(DeviceKind.HITTRAX, hittrax_rows), tz)
        fullswing = normalize_swings(to_raw_swings(DeviceKind.FULLSWING, fullswing_rows or []), tz)

        unmatchable = [s for s in blast + hittrax + fullswing if not s.is_matchable]
        if unmatchable:
            logger.warning(f"{len(unmatchable)} swings have no usable timestamp")

        pairs = match_swings(blast, hittrax, self.config.window_seconds)
        pairs.extend(singleton_pairs(fullswing))

        sessions = build_sessions(pairs)
        for session in sessions:
            session.metrics = compute_session_metrics(
                session,
                hard_hit_threshold=self.config.hard_hit_threshold,
                squared_up_threshold=self.config.squared_up_threshold,
            )

        result = ReconciliationResult(sessions=sessions, pairs=pairs, unmatchable=unmatchable)
        logger.info(
            f"Reconciled {len(blast)} blast, {len(hittrax)} hittrax, {len(fullswing)} fullswing "
            f"swings into {len(sessions)} sessions ({result.paired_count} paired swings)"
        )
        return result

    def reconcile_streams(self, streams: Dict[DeviceKind, Rows]) -> ReconciliationResult:
        """Reconcile a device kind -> rows mapping."""
        return self.reconcile(
            streams.get(DeviceKind.BLAST, []),
            streams.get(DeviceKind.HITTRAX, []),
            streams.get(DeviceKind.FULLSWING, []),
        )

    def load_csv_streams(
        self,
        blast_path: Union[str, Path],
        hittrax_path: Union[str, Path],
        fullswing_path: Optional[Union[str, Path]] = None,
    ) -> Dict[DeviceKind, Rows]:
        """
        Read device CSV exports.

        Raises:
            FileNotFoundError: If an export does not exist.
        """
        streams = {
            DeviceKind.BLAST: load_device_csv(blast_path),
            DeviceKind.HITTRAX: load_device_csv(hittrax_path),
        }
        if fullswing_path is not None:
            streams[DeviceKind.FULLSWING] = load_device_csv(fullswing_path)
        return streams

    def reconcile_csv(
        self,
        blast_path: Union[str, Path],
        hittrax_path: Union[str, Path],
        fullswing_path: Optional[Union[str, Path]] = None,
    ) -> ReconciliationResult:
        """Reconcile device CSV exports."""
        return self.reconcile_streams(
            self.load_csv_streams(blast_path, hittrax_path, fullswing_path)
        )

    def reconcile_athlete(self, athlete_id: str) -> ReconciliationResult:
        """Reconcile an athlete's swings stored in the local database."""
        logger.info(f"Reconciling stored swings for athlete {athlete_id}")
        return self.reconcile_streams(self.repository.get_streams(athlete_id))

    def fetch_athlete(self, athlete_id: str, store: bool = False) -> ReconciliationResult:
        """
        Reconcile an athlete's swings read from the remote data service.

        Args:
            athlete_id: Athlete identifier in the data service.
            store: Also save the fetched rows to the local database.

        Returns:
            ReconciliationResult for the fetched rows.
        """
        streams = self.client.fetch_streams(athlete_id)

        if store:
            for kind, rows in streams.items():
                self.repository.import_rows(athlete_id, kind, rows)

        return self.reconcile_streams(streams)

    def cleanup(self) -> None:
        """Clean up resources."""
        if self._client:
            self._client.close()
        self._resources.close()
        self._repository = None

        logger.debug("Pipeline resources cleaned up")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.cleanup()
        return False
