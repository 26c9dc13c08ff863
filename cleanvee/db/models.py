"""SQLAlchemy async database models for Cleanvee.

Maps the facility entities (buildings, checkpoints, cleaning logs) and the
derived state the reactors maintain (alerts, SLA events, streaks, stats).
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from cleanvee.utils.timestamps import utcnow


def _new_id() -> str:
    return uuid4().hex


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class BuildingModel(Base):
    """Client building with its cleaning SLA contract."""

    __tablename__ = "buildings"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_new_id)
    name: Mapped[str | None] = mapped_column(Text)

    # client_sla_config
    required_cleanings_per_day: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )
    cleaning_window_start: Mapped[str | None] = mapped_column(Text)
    cleaning_window_end: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "required_cleanings_per_day >= 1", name="check_required_cleanings_positive"
        ),
    )

    @property
    def client_sla_config(self) -> dict:
        return {
            "required_cleanings_per_day": self.required_cleanings_per_day,
            "cleaning_window_start": self.cleaning_window_start,
            "cleaning_window_end": self.cleaning_window_end,
        }


class CheckpointModel(Base):
    """Room or zone that gets cleaned, tagged with an NFC sticker.

    last_cleaned_at and last_cleaned_timestamp are always written together
    (see cleanvee.facility.state); the timestamp exists for range queries.
    """

    __tablename__ = "checkpoints"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_new_id)
    building_id: Mapped[str] = mapped_column(
        Text, ForeignKey("buildings.id"), nullable=False, index=True
    )
    location_label: Mapped[str | None] = mapped_column(Text)
    floor_number: Mapped[int | None] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Denormalized freshness
    last_cleaned_at: Mapped[str | None] = mapped_column(Text)
    last_cleaned_timestamp: Mapped[datetime | None] = mapped_column(DateTime)
    current_status: Mapped[str] = mapped_column(Text, nullable=False, default="UNKNOWN")

    updated_at: Mapped[datetime | None] = mapped_column(DateTime)

    __table_args__ = (
        Index("idx_checkpoints_active_cleaned", "is_active", "last_cleaned_timestamp"),
        CheckConstraint(
            "current_status IN ('CLEAN', 'OVERDUE', 'UNKNOWN')",
            name="check_checkpoint_status",
        ),
    )


class CleaningLogModel(Base):
    """Cleaning verification record (proof of presence + proof of quality)."""

    __tablename__ = "cleaning_logs"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_new_id)
    cleaner_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    checkpoint_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    building_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    proof_of_presence: Mapped[dict | None] = mapped_column(JSON)
    proof_of_quality: Mapped[dict | None] = mapped_column(JSON)

    # verification_result
    verification_status: Mapped[str] = mapped_column(Text, nullable=False)
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    flag_reason: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        # Feedback override: latest verified log per checkpoint
        Index(
            "idx_logs_checkpoint_status_created",
            "checkpoint_id",
            "verification_status",
            "created_at",
        ),
    )

    @property
    def verification_result(self) -> dict:
        return {
            "status": self.verification_status,
            "rejection_reason": self.rejection_reason,
            "flag_reason": self.flag_reason,
        }


class AlertModel(Base):
    """Operational alert raised by the reactors or the watchdog."""

    __tablename__ = "alerts"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_new_id)
    checkpoint_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    building_id: Mapped[str | None] = mapped_column(Text, index=True)
    related_log_id: Mapped[str | None] = mapped_column(Text)

    type: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="OPEN")
    message: Mapped[str | None] = mapped_column(Text)
    details: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    last_cleaned_at: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime)
    resolved_by_log_id: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index("idx_alerts_checkpoint_type_status", "checkpoint_id", "type", "status"),
        # At most one OPEN missing-clean alert per checkpoint
        Index(
            "uq_alerts_open_missing_clean",
            "checkpoint_id",
            "type",
            unique=True,
            postgresql_where=text("status = 'OPEN' AND type = 'SLA_MISSING_CLEAN'"),
            sqlite_where=text("status = 'OPEN' AND type = 'SLA_MISSING_CLEAN'"),
        ),
        CheckConstraint("status IN ('OPEN', 'RESOLVED')", name="check_alert_status"),
    )


class SlaEventModel(Base):
    """Append-only SLA audit trail (consumed by analytics)."""

    __tablename__ = "sla_events"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_new_id)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    building_id: Mapped[str | None] = mapped_column(Text, index=True)
    checkpoint_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    recovered_by_log_id: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class UserModel(Base):
    """Cleaner (or manager) account; carries the verified-log streak."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    full_name: Mapped[str | None] = mapped_column(Text)
    role: Mapped[str] = mapped_column(Text, nullable=False, default="cleaner")
    verified_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_streak_log_id: Mapped[str | None] = mapped_column(Text)


class OccupantFeedbackModel(Base):
    """Complaint submitted from the occupant QR form."""

    __tablename__ = "occupant_feedback"

    id: Mapped[str] = mapped_column(Text, primary_key=True, default=_new_id)
    checkpoint_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class DailyStatsModel(Base):
    """Per-building daily counters so dashboards avoid scanning cleaning_logs."""

    __tablename__ = "stats_daily"

    id: Mapped[str] = mapped_column(Text, primary_key=True)  # {building_id}_{YYYY-MM-DD}
    building_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    stats_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    total_logs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    verified_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    avg_score_sum: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    last_updated: Mapped[datetime | None] = mapped_column(DateTime)
