"""
Derived swing and session metrics.

All functions here are pure and total: empty or partial input yields a
neutral value (0 for counts, None for averages, maxima and rates) rather
than an exception.

The squared-up model estimates the best exit velocity a swing could have
produced from bat speed and pitch speed:

    max_ev = 1.23 * bat_speed + pitch_coefficient(pitch_speed) * pitch_speed

and reports the achieved share of it, capped at 100.
"""

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from hitsync.devices.base import NormalizedSwing
from hitsync.reconcile.matcher import MatchedPair
from hitsync.reconcile.sessions import Session

DEFAULT_HARD_HIT_THRESHOLD = 95.0
DEFAULT_SQUARED_UP_THRESHOLD = 80.0

BAT_SPEED_COEFFICIENT = 1.23

# (upper bound exclusive, coefficient); speeds at or above the last bound use the tail
PITCH_COEFFICIENT_BANDS: Tuple[Tuple[float, float], ...] = (
    (40.0, 0.50),
    (55.0, 0.10),
    (70.0, 0.17),
)
PITCH_COEFFICIENT_TAIL = 0.23

SMASH_FACTOR_TIERS: Tuple[Tuple[str, float], ...] = (
    ("elite", 1.3),
    ("excellent", 1.2),
    ("good", 1.1),
    ("average", 1.0),
)
SMASH_FACTOR_FLOOR_TIER = "below"

PITCH_SPEED_BUCKETS: Tuple[Tuple[str, float, float], ...] = (
    ("<60", 0.0, 60.0),
    ("60-69", 60.0, 70.0),
    ("70-79", 70.0, 80.0),
    ("80-89", 80.0, 90.0),
    ("90+", 90.0, 200.0),
)

# Ball flight model
GRAVITY_FT_S2 = 32.174
MPH_TO_FPS = 1.467
DRAG_COEFFICIENT = 0.0004
RELEASE_HEIGHT_FT = 3.0
FLIGHT_STEP_S = 0.01
MAX_FLIGHT_FT = 600.0


def _present(values: Iterable[Optional[float]]) -> List[float]:
    return [v for v in values if v is not None]


def average(values: Iterable[Optional[float]]) -> Optional[float]:
    """Mean of the non-null values, None when there are none."""
    present = _present(values)
    if not present:
        return None
    return float(np.mean(present))


def maximum(values: Iterable[Optional[float]]) -> Optional[float]:
    """Max of the non-null values, None when there are none."""
    present = _present(values)
    if not present:
        return None
    return float(np.max(present))


def pitch_coefficient(pitch_speed: float) -> float:
    """Empirical pitch-speed coefficient of the max exit velocity model."""
    for upper, coefficient in PITCH_COEFFICIENT_BANDS:
        if pitch_speed < upper:
            return coefficient
    return PITCH_COEFFICIENT_TAIL


def max_potential_exit_velocity(bat_speed: float, pitch_speed: float) -> float:
    """Theoretical maximum exit velocity for a bat speed and pitch speed."""
    return BAT_SPEED_COEFFICIENT * bat_speed + pitch_coefficient(pitch_speed) * pitch_speed


def squared_up_rate(
    bat_speed: Optional[float],
    pitch_speed: Optional[float],
    exit_velocity: Optional[float],
) -> Optional[float]:
    """
    Achieved share of the theoretical max exit velocity, in percent.

    Args:
        bat_speed: Bat speed from the bat sensor.
        pitch_speed: Pitch speed at the plate.
        exit_velocity: Measured exit velocity.

    Returns:
        ``min(100, exit_velocity / max_ev * 100)``, or None when any input
        is missing or non-positive.
    """
    if not bat_speed or not pitch_speed or not exit_velocity:
        return None
    if bat_speed < 0 or pitch_speed < 0 or exit_velocity < 0:
        return None
    max_ev = max_potential_exit_velocity(bat_speed, pitch_speed)
    if max_ev <= 0:
        return None
    return min(100.0, exit_velocity / max_ev * 100.0)


def is_hard_hit(exit_velocity: Optional[float], threshold: float = DEFAULT_HARD_HIT_THRESHOLD) -> bool:
    return exit_velocity is not None and exit_velocity >= threshold


def hard_hit_rate(
    exit_velocities: Iterable[Optional[float]],
    threshold: float = DEFAULT_HARD_HIT_THRESHOLD,
) -> Optional[float]:
    """Hard-hit swings over contact swings (exit velocity > 0)."""
    contact = [ev for ev in _present(exit_velocities) if ev > 0]
    if not contact:
        return None
    hard = sum(1 for ev in contact if is_hard_hit(ev, threshold))
    return hard / len(contact)


def smash_factor(
    exit_velocity: Optional[float],
    bat_speed: Optional[float],
    precomputed: Optional[float] = None,
) -> Optional[float]:
    """
    Exit velocity per unit of bat speed.

    Falls back to a value the data source already carries when the ratio
    cannot be formed.
    """
    if exit_velocity is not None and bat_speed:
        return exit_velocity / bat_speed
    return precomputed


def smash_factor_tier(value: float) -> str:
    for tier, lower in SMASH_FACTOR_TIERS:
        if value >= lower:
            return tier
    return SMASH_FACTOR_FLOOR_TIER


def smash_factor_tiers(values: Iterable[Optional[float]]) -> Dict[str, int]:
    """Count smash factors per quality tier; every tier is present."""
    counts = {tier: 0 for tier, _ in SMASH_FACTOR_TIERS}
    counts[SMASH_FACTOR_FLOOR_TIER] = 0
    for value in _present(values):
        counts[smash_factor_tier(value)] += 1
    return counts


@dataclass
class PitchSpeedBucket:
    """Contact vs. whiff counts within a pitch speed band."""
    label: str
    total: int
    whiffs: int
    contacts: int
    whiff_pct: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def whiff_rate_by_pitch_speed(swings: Iterable[NormalizedSwing]) -> List[PitchSpeedBucket]:
    """
    Whiff rate per pitch speed band.

    A whiff is a swing with no exit velocity (or zero). Swings without a
    pitch speed are ignored and empty bands are omitted.
    """
    with_pitch = [
        s for s in swings
        if s.metric("pitch_speed") is not None and s.metric("pitch_speed") > 0
    ]

    buckets: List[PitchSpeedBucket] = []
    for label, lower, upper in PITCH_SPEED_BUCKETS:
        in_bucket = [s for s in with_pitch if lower <= s.metric("pitch_speed") < upper]
        if not in_bucket:
            continue
        whiffs = sum(1 for s in in_bucket if not s.metric("exit_velocity"))
        buckets.append(
            PitchSpeedBucket(
                label=label,
                total=len(in_bucket),
                whiffs=whiffs,
                contacts=len(in_bucket) - whiffs,
                whiff_pct=whiffs / len(in_bucket) * 100.0,
            )
        )
    return buckets


def projected_distance(exit_velocity: float, launch_angle: float) -> float:
    """
    Carry distance in feet of a batted ball under quadratic drag.

    Args:
        exit_velocity: Exit velocity in mph.
        launch_angle: Launch angle in degrees.

    Returns:
        Horizontal distance at landing, capped near 600 ft.
    """
    if exit_velocity <= 0:
        return 0.0

    speed = exit_velocity * MPH_TO_FPS
    angle = math.radians(launch_angle)
    vx = speed * math.cos(angle)
    vy = speed * math.sin(angle)
    x = 0.0
    y = RELEASE_HEIGHT_FT

    while y > 0 and x < MAX_FLIGHT_FT:
        v = math.hypot(vx, vy)
        if v > 0:
            drag = DRAG_COEFFICIENT * v * v
            vx -= (vx / v) * drag * FLIGHT_STEP_S
            vy -= GRAVITY_FT_S2 * FLIGHT_STEP_S + (vy / v) * drag * FLIGHT_STEP_S
        else:
            vy -= GRAVITY_FT_S2 * FLIGHT_STEP_S
        x += vx * FLIGHT_STEP_S
        y += vy * FLIGHT_STEP_S

    return max(0.0, x)


@dataclass
class SwingMetrics:
    """Derived metrics for one physical swing (a pair or a combined-unit record)."""
    bat_speed: Optional[float] = None
    exit_velocity: Optional[float] = None
    pitch_speed: Optional[float] = None
    launch_angle: Optional[float] = None
    max_potential_exit_velocity: Optional[float] = None
    squared_up_rate: Optional[float] = None
    smash_factor: Optional[float] = None
    projected_distance: Optional[float] = None
    is_hard_hit: bool = False
    time_diff_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _first_metric(swings: Sequence[NormalizedSwing], name: str) -> Optional[float]:
    for swing in swings:
        value = swing.metric(name)
        if value is not None:
            return value
    return None


def swing_metrics(
    pair: MatchedPair,
    hard_hit_threshold: float = DEFAULT_HARD_HIT_THRESHOLD,
) -> SwingMetrics:
    """
    Combine both sides of a pair into one swing's metrics.

    Bat speed comes from whichever side measured it (bat sensor or combined
    unit); ball metrics likewise. A combined unit's own squared-up value is
    used verbatim when it cannot be computed.
    """
    swings = pair.swings
    bat = _first_metric(swings, "bat_speed")
    ev = _first_metric(swings, "exit_velocity")
    pitch = _first_metric(swings, "pitch_speed")

    max_ev = None
    if bat and pitch and bat > 0 and pitch > 0:
        max_ev = max_potential_exit_velocity(bat, pitch)

    launch_angle = _first_metric(swings, "launch_angle")

    squared = squared_up_rate(bat, pitch, ev)
    if squared is None:
        squared = _first_metric(swings, "squared_up")

    return SwingMetrics(
        bat_speed=bat,
        exit_velocity=ev,
        pitch_speed=pitch,
        launch_angle=launch_angle,
        max_potential_exit_velocity=max_ev,
        squared_up_rate=squared,
        smash_factor=smash_factor(ev, bat, _first_metric(swings, "smash_factor")),
        projected_distance=(
            projected_distance(ev, launch_angle)
            if ev is not None and launch_angle is not None else None
        ),
        is_hard_hit=is_hard_hit(ev, hard_hit_threshold),
        time_diff_seconds=pair.time_diff_seconds,
    )


@dataclass
class SessionMetrics:
    """
    Aggregates for one session.

    Counts default to 0; averages, maxima and rates are None when no
    swing carries the relevant field.

    Whiff buckets cover combined-unit swings only, since the ball tracker
    records batted balls rather than misses.
    """
    total_swings: int = 0
    contact_swings: int = 0
    avg_exit_velocity: Optional[float] = None
    max_exit_velocity: Optional[float] = None
    avg_launch_angle: Optional[float] = None
    avg_distance: Optional[float] = None
    max_distance: Optional[float] = None
    avg_bat_speed: Optional[float] = None
    max_bat_speed: Optional[float] = None
    avg_attack_angle: Optional[float] = None
    avg_on_plane_efficiency: Optional[float] = None
    hard_hit_count: int = 0
    hard_hit_rate: Optional[float] = None
    hard_hit_pct: Optional[float] = None
    avg_smash_factor: Optional[float] = None
    smash_factor_tiers: Dict[str, int] = field(default_factory=dict)
    max_projected_distance: Optional[float] = None
    squared_up_eligible: int = 0
    squared_up_count: int = 0
    avg_squared_up_rate: Optional[float] = None
    squared_up_pct: Optional[float] = None
    whiff_by_pitch_speed: List[PitchSpeedBucket] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def compute_session_metrics(
    session: Session,
    hard_hit_threshold: float = DEFAULT_HARD_HIT_THRESHOLD,
    squared_up_threshold: float = DEFAULT_SQUARED_UP_THRESHOLD,
) -> SessionMetrics:
    """
    Derive session aggregates from the session's member swings.

    Args:
        session: Session built by the aggregator.
        hard_hit_threshold: Exit velocity at or above which contact is hard.
        squared_up_threshold: Per-swing squared-up rate counted as squared up.

    Returns:
        SessionMetrics for the session.
    """
    ball_swings = session.hittrax_swings + session.fullswing_swings
    bat_swings = session.blast_swings + session.fullswing_swings

    contact = [
        s for s in ball_swings
        if s.metric("exit_velocity") is not None and s.metric("exit_velocity") > 0
    ]
    exit_velocities = [s.metric("exit_velocity") for s in contact]
    distances = [
        s.metric("distance") for s in contact
        if s.metric("distance") is not None and s.metric("distance") > 0
    ]
    bat_speeds = [s.metric("bat_speed") for s in bat_swings]

    per_swing = [swing_metrics(pair, hard_hit_threshold) for pair in session.pairs]
    squared = _present(m.squared_up_rate for m in per_swing)
    squared_up_count = sum(1 for rate in squared if rate >= squared_up_threshold)
    hard_hit_count = sum(1 for ev in exit_velocities if is_hard_hit(ev, hard_hit_threshold))
    hit_rate = hard_hit_rate(exit_velocities, hard_hit_threshold)

    return SessionMetrics(
        total_swings=session.total_swings,
        contact_swings=len(contact),
        avg_exit_velocity=average(exit_velocities),
        max_exit_velocity=maximum(exit_velocities),
        avg_launch_angle=average(s.metric("launch_angle") for s in contact),
        avg_distance=average(distances),
        max_distance=maximum(distances),
        avg_bat_speed=average(bat_speeds),
        max_bat_speed=maximum(bat_speeds),
        avg_attack_angle=average(s.metric("attack_angle") for s in session.blast_swings),
        avg_on_plane_efficiency=average(
            s.metric("on_plane_efficiency") for s in session.blast_swings
        ),
        hard_hit_count=hard_hit_count,
        hard_hit_rate=hit_rate,
        hard_hit_pct=hit_rate * 100.0 if hit_rate is not None else None,
        avg_smash_factor=average(m.smash_factor for m in per_swing),
        smash_factor_tiers=smash_factor_tiers(m.smash_factor for m in per_swing),
        max_projected_distance=maximum(m.projected_distance for m in per_swing),
        squared_up_eligible=len(squared),
        squared_up_count=squared_up_count,
        avg_squared_up_rate=average(squared),
        squared_up_pct=squared_up_count / len(squared) * 100.0 if squared else None,
        whiff_by_pitch_speed=whiff_rate_by_pitch_speed(session.fullswing_swings),
    )
