"""Cleanvee Pydantic models for type-safe data validation.

These are the shapes the reactors work with. Upstream producers (the mobile
capture flow and the photo-inference pipeline) are not trusted to send
complete documents, so optional sections default instead of failing.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class LogStatus(str, Enum):
    """Verification outcome of a cleaning log."""

    VERIFIED = "verified"
    REJECTED = "rejected"
    FLAGGED = "flagged_for_review"


class CheckpointStatus(str, Enum):
    """Derived freshness state of a checkpoint."""

    CLEAN = "CLEAN"
    OVERDUE = "OVERDUE"
    UNKNOWN = "UNKNOWN"


class AlertType(str, Enum):
    SAFETY_HAZARD = "SAFETY_HAZARD"
    QUALITY_FAILURE = "QUALITY_FAILURE"
    SLA_MISSING_CLEAN = "SLA_MISSING_CLEAN"
    SUPERVISOR_AUDIT_REQUEST = "SUPERVISOR_AUDIT_REQUEST"


class AlertSeverity(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"


class AlertStatus(str, Enum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


class SlaEventType(str, Enum):
    SLA_BREACH_RECOVERED = "SLA_BREACH_RECOVERED"


class FeedbackType(str, Enum):
    """Occupant feedback categories that count as a complaint."""

    BAD_SMELL = "BAD_SMELL"
    DIRTY = "DIRTY"
    SPILL = "SPILL"
    ISSUE = "ISSUE"
    OTHER = "OTHER"


NEGATIVE_FEEDBACK_TYPES = frozenset(t.value for t in FeedbackType)


class ClientSlaConfig(BaseModel):
    """Per-building cleaning contract."""

    required_cleanings_per_day: int = 1
    cleaning_window_start: str | None = None  # "06:00"
    cleaning_window_end: str | None = None  # "22:00"


class GeoLocation(BaseModel):
    latitude: float
    longitude: float
    accuracy_meters: float | None = None


class ProofOfPresence(BaseModel):
    """NFC tap plus device location at the time of cleaning."""

    nfc_tap_timestamp: str | None = None
    nfc_payload_hash: str | None = None
    geo_location: GeoLocation | None = None


class DetectedObject(BaseModel):
    label: str
    confidence: float = 0.0
    bounding_box: dict[str, float] | None = None


class ProofOfQuality(BaseModel):
    """Output of the photo-inference pipeline (opaque upstream producer)."""

    photo_storage_path: str | None = None
    ai_inference_timestamp: str | None = None
    ai_model_used: str | None = None
    inference_time_ms: int | None = None
    overall_score: int | float = 0
    detected_objects: list[DetectedObject] = Field(default_factory=list)
    passed_validation: bool | None = None

    @field_validator("overall_score", mode="before")
    @classmethod
    def default_score(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("detected_objects", mode="before")
    @classmethod
    def default_objects(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def hazard_labels(self) -> list[str]:
        return [obj.label for obj in self.detected_objects]


class VerificationResult(BaseModel):
    status: str
    rejection_reason: str | None = None
    flag_reason: str | None = None


class CleaningLog(BaseModel):
    """A single cleaning verification record."""

    id: str | None = None
    cleaner_id: str
    checkpoint_id: str
    building_id: str
    created_at: datetime
    proof_of_presence: ProofOfPresence | None = None
    proof_of_quality: ProofOfQuality | None = None
    verification_result: VerificationResult

    @property
    def overall_score(self) -> int | float:
        if self.proof_of_quality is None:
            return 0
        return self.proof_of_quality.overall_score

    @property
    def hazard_labels(self) -> list[str]:
        if self.proof_of_quality is None:
            return []
        return self.proof_of_quality.hazard_labels

    @property
    def status(self) -> str:
        return self.verification_result.status

    @property
    def is_verified(self) -> bool:
        return self.status == LogStatus.VERIFIED.value


class OccupantFeedback(BaseModel):
    """Complaint submitted by a building occupant."""

    id: str | None = None
    checkpoint_id: str
    type: str
    details: str | None = None
    created_at: datetime | None = None

    @property
    def is_negative(self) -> bool:
        return self.type in NEGATIVE_FEEDBACK_TYPES
