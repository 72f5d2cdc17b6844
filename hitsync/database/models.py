"""SQLAlchemy models for locally stored device swing rows."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import DateTime, Float, ForeignKey, Index, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models."""

    def to_row(self) -> Dict[str, Any]:
        """Column values as a device-native row dict."""
        return {column.name: getattr(self, column.name) for column in self.__table__.columns}


class Athlete(Base):
    """
    Represents an athlete whose swings are tracked.

    Attributes:
        athlete_id: Identifier shared with the remote data service.
        name: Display name.
    """
    __tablename__ = "athletes"

    athlete_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Relationships
    blast_swings: Mapped[List["BlastSwing"]] = relationship(
        "BlastSwing", back_populates="athlete", cascade="all, delete-orphan"
    )
    hittrax_sessions: Mapped[List["HitTraxSession"]] = relationship(
        "HitTraxSession", back_populates="athlete", cascade="all, delete-orphan"
    )
    fullswing_sessions: Mapped[List["FullSwingSession"]] = relationship(
        "FullSwingSession", back_populates="athlete", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Athlete(athlete_id={self.athlete_id}, name={self.name})>"


class BlastSwing(Base):
    """
    One bat-sensor swing.

    Timestamps are stored as the raw text the sensor produced; they are
    parsed during reconciliation.
    """
    __tablename__ = "blast_swings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    athlete_id: Mapped[str] = mapped_column(String(64), ForeignKey("athletes.athlete_id"), nullable=False, index=True)

    # Raw timestamps
    created_at_utc: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    recorded_date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True, index=True)
    recorded_time: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    # Swing metrics
    bat_speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    attack_angle: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    on_plane_efficiency: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    peak_hand_speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    time_to_contact: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    power: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Metadata
    imported_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    athlete: Mapped["Athlete"] = relationship("Athlete", back_populates="blast_swings")

    def __repr__(self) -> str:
        return f"<BlastSwing(id={self.id}, bat_speed={self.bat_speed}, recorded_date={self.recorded_date})>"


class HitTraxSession(Base):
    """A batted-ball tracker session as the tracker itself grouped it."""
    __tablename__ = "hittrax_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    athlete_id: Mapped[str] = mapped_column(String(64), ForeignKey("athletes.athlete_id"), nullable=False, index=True)
    session_date: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    athlete: Mapped["Athlete"] = relationship("Athlete", back_populates="hittrax_sessions")
    swings: Mapped[List["HitTraxSwing"]] = relationship(
        "HitTraxSwing", back_populates="session", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<HitTraxSession(id={self.id}, session_date={self.session_date})>"


class HitTraxSwing(Base):
    """One batted-ball tracker swing."""
    __tablename__ = "hittrax_swings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    session_id: Mapped[str] = mapped_column(String(64), ForeignKey("hittrax_sessions.id"), nullable=False, index=True)
    swing_timestamp: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    # Ball flight
    exit_velocity: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    launch_angle: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    distance: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    horizontal_angle: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    pitch_velocity: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    spray_chart_x: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    spray_chart_z: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    imported_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    session: Mapped["HitTraxSession"] = relationship("HitTraxSession", back_populates="swings")

    def __repr__(self) -> str:
        return f"<HitTraxSwing(id={self.id}, exit_velocity={self.exit_velocity}, swing_timestamp={self.swing_timestamp})>"


class FullSwingSession(Base):
    """A combined-unit session as the unit grouped it."""
    __tablename__ = "fullswing_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    athlete_id: Mapped[str] = mapped_column(String(64), ForeignKey("athletes.athlete_id"), nullable=False, index=True)
    session_date: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    athlete: Mapped["Athlete"] = relationship("Athlete", back_populates="fullswing_sessions")
    swings: Mapped[List["FullSwingSwing"]] = relationship(
        "FullSwingSwing", back_populates="session", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<FullSwingSession(id={self.id}, session_date={self.session_date})>"


class FullSwingSwing(Base):
    """One combined-unit swing (bat and ball on a single clock)."""
    __tablename__ = "fullswing_swings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    session_id: Mapped[str] = mapped_column(String(64), ForeignKey("fullswing_sessions.id"), nullable=False, index=True)
    swing_timestamp: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    swing_date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    swing_time: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    bat_speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    exit_velocity: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    launch_angle: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    spray_angle: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    distance: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    smash_factor: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    squared_up: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    pitch_speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    imported_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    session: Mapped["FullSwingSession"] = relationship("FullSwingSession", back_populates="swings")

    __table_args__ = (
        Index("idx_fullswing_session_date", "session_id", "swing_date"),
    )

    def __repr__(self) -> str:
        return f"<FullSwingSwing(id={self.id}, bat_speed={self.bat_speed}, exit_velocity={self.exit_velocity})>"
