"""Append-only SLA audit trail."""

from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from cleanvee.db.models import SlaEventModel
from cleanvee.models import CleaningLog, SlaEventType
from cleanvee.utils.timestamps import ms_to_hours, to_iso, utcnow

logger = structlog.get_logger(__name__)


class SlaEventRecorder:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def record_breach_recovery(
        self,
        log: CleaningLog,
        log_id: str,
        previous_cleaning_at: str,
        gap_duration_ms: int,
        allowed_duration_ms: float,
    ) -> SlaEventModel:
        """Record that a checkpoint went past its SLA gap and was cleaned again."""
        gap_hours = ms_to_hours(gap_duration_ms)
        allowed_hours = ms_to_hours(allowed_duration_ms)

        event = SlaEventModel(
            type=SlaEventType.SLA_BREACH_RECOVERED.value,
            building_id=log.building_id,
            checkpoint_id=log.checkpoint_id,
            recovered_by_log_id=log_id,
            details={
                "gap_duration_ms": gap_duration_ms,
                "allowed_duration_ms": allowed_duration_ms,
                "gap_duration_hours": gap_hours,
                "allowed_duration_hours": allowed_hours,
                "previous_cleaning_at": previous_cleaning_at,
                "recovered_at": to_iso(log.created_at),
            },
            created_at=utcnow(),
        )
        self.session.add(event)
        await self.session.flush()

        logger.info(
            "sla_breach_recovered",
            checkpoint_id=log.checkpoint_id,
            gap_hours=gap_hours,
            allowed_hours=allowed_hours,
        )
        return event
