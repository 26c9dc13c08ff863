"""Alert creation and resolution.

Quality and safety alerts are raised once per failing log and never
deduplicated: every failing log is its own actionable event. Missing-clean
alerts are deduplicated per checkpoint (query first, partial unique index
as the backstop).

Methods only stage changes on the session; the caller owns the transaction,
so a multi-row resolution commits all-or-nothing.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cleanvee.db.models import AlertModel, CheckpointModel
from cleanvee.models import AlertSeverity, AlertStatus, AlertType, CleaningLog
from cleanvee.utils.timestamps import utcnow

logger = structlog.get_logger(__name__)

DEFAULT_MIN_QUALITY_SCORE = 70
DEFAULT_CHUNK_SIZE = 10


class AlertService:
    """Creates and resolves Alert rows on a caller-managed session."""

    def __init__(
        self, session: AsyncSession, min_quality_score: int = DEFAULT_MIN_QUALITY_SCORE
    ):
        self.session = session
        self.min_quality_score = min_quality_score

    async def create_safety_alert(
        self, log_id: str, log: CleaningLog
    ) -> AlertModel | None:
        """Raise a HIGH alert when the photo shows hazards or scores too low.

        Hazards take precedence over a low score. The score threshold is
        strict: a score equal to min_quality_score passes.

        Returns:
            The staged alert, or None when the log passed both checks
        """
        score = log.overall_score
        hazards = log.hazard_labels

        if hazards:
            alert_type = AlertType.SAFETY_HAZARD
        elif score < self.min_quality_score:
            alert_type = AlertType.QUALITY_FAILURE
        else:
            return None

        alert = AlertModel(
            related_log_id=log_id,
            building_id=log.building_id,
            checkpoint_id=log.checkpoint_id,
            type=alert_type.value,
            severity=AlertSeverity.HIGH.value,
            status=AlertStatus.OPEN.value,
            details={"score": score, "detected_hazards": hazards},
            created_at=utcnow(),
        )
        self.session.add(alert)
        await self.session.flush()

        logger.info(
            "safety_alert_created",
            alert_type=alert_type.value,
            log_id=log_id,
            score=score,
            hazards=len(hazards),
        )
        return alert

    async def resolve_missing_clean_alerts(
        self, checkpoint_id: str, resolved_by_log_id: str
    ) -> int:
        """Resolve every OPEN SLA_MISSING_CLEAN alert for the checkpoint.

        Returns:
            Number of alerts resolved (0 means nothing was written)
        """
        result = await self.session.execute(
            select(AlertModel.id).where(
                AlertModel.checkpoint_id == checkpoint_id,
                AlertModel.type == AlertType.SLA_MISSING_CLEAN.value,
                AlertModel.status == AlertStatus.OPEN.value,
            )
        )
        alert_ids = list(result.scalars())
        if not alert_ids:
            return 0

        await self.session.execute(
            update(AlertModel)
            .where(AlertModel.id.in_(alert_ids))
            .values(
                status=AlertStatus.RESOLVED.value,
                resolved_at=utcnow(),
                resolved_by_log_id=resolved_by_log_id,
            )
            .execution_options(synchronize_session=False)
        )

        logger.info(
            "missing_clean_alerts_resolved",
            checkpoint_id=checkpoint_id,
            count=len(alert_ids),
            resolved_by_log_id=resolved_by_log_id,
        )
        return len(alert_ids)

    async def find_open_missing_clean(
        self, checkpoint_ids: Sequence[str], chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> set[str]:
        """Checkpoint ids that already have an OPEN SLA_MISSING_CLEAN alert.

        Looked up in chunks to keep "IN" lists bounded.
        """
        found: set[str] = set()
        for chunk in _chunks(checkpoint_ids, chunk_size):
            result = await self.session.execute(
                select(AlertModel.checkpoint_id).where(
                    AlertModel.checkpoint_id.in_(chunk),
                    AlertModel.type == AlertType.SLA_MISSING_CLEAN.value,
                    AlertModel.status == AlertStatus.OPEN.value,
                )
            )
            found.update(result.scalars())
        return found

    def stage_missing_clean_alert(
        self,
        checkpoint: CheckpointModel,
        hours_overdue: float | None,
        threshold_hours: float,
    ) -> AlertModel:
        """Add an SLA_MISSING_CLEAN alert to the session without flushing."""
        if hours_overdue is None:
            message = (
                f"Area has no recorded cleaning (SLA: {threshold_hours:g}h)."
            )
        else:
            message = (
                f"Area has not been cleaned in {hours_overdue} hours "
                f"(SLA: {threshold_hours:g}h)."
            )

        alert = AlertModel(
            building_id=checkpoint.building_id,
            checkpoint_id=checkpoint.id,
            type=AlertType.SLA_MISSING_CLEAN.value,
            severity=AlertSeverity.MEDIUM.value,
            status=AlertStatus.OPEN.value,
            message=message,
            details={
                "hours_overdue": hours_overdue,
                "sla_threshold_hours": threshold_hours,
            },
            last_cleaned_at=checkpoint.last_cleaned_at or "never",
            created_at=utcnow(),
        )
        self.session.add(alert)
        return alert

    async def create_audit_request(self, log: CleaningLog, streak: int) -> AlertModel:
        """Ask a supervisor to spot-check the checkpoint a cleaner just finished."""
        alert = AlertModel(
            building_id=log.building_id,
            checkpoint_id=log.checkpoint_id,
            related_log_id=log.id,
            type=AlertType.SUPERVISOR_AUDIT_REQUEST.value,
            severity=AlertSeverity.MEDIUM.value,
            status=AlertStatus.OPEN.value,
            message=(
                f"Cleaner streak reached {streak}. Manual spot check requested "
                f"for {log.checkpoint_id}."
            ),
            details={"cleaner_id": log.cleaner_id, "streak": streak},
            created_at=utcnow(),
        )
        self.session.add(alert)
        await self.session.flush()

        logger.info(
            "audit_request_created",
            cleaner_id=log.cleaner_id,
            checkpoint_id=log.checkpoint_id,
            streak=streak,
        )
        return alert


def _chunks(values: Sequence[str], size: int) -> Iterable[list[str]]:
    size = max(1, size)
    for start in range(0, len(values), size):
        yield list(values[start : start + size])
