"""Scheduled SLA sweep.

Independently of incoming logs, finds active checkpoints whose last verified
cleaning is older than the global threshold and raises one SLA_MISSING_CLEAN
alert per checkpoint. The threshold is a single default (4h), not the
per-building gap used by the log reactor's breach check.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

import structlog
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cleanvee.alerts.service import DEFAULT_CHUNK_SIZE, AlertService
from cleanvee.config import WatchdogConfig
from cleanvee.db.models import CheckpointModel
from cleanvee.facility.state import FacilityStateUpdater
from cleanvee.utils.timestamps import as_naive_utc, millis_between, ms_to_hours, to_iso, utcnow

logger = structlog.get_logger(__name__)

DEFAULT_MAX_GAP_HOURS = 4.0


@dataclass
class WatchdogResult:
    overdue: int = 0
    already_open: int = 0
    alerts_created: int = 0
    flagged_checkpoint_ids: list[str] = field(default_factory=list)


class SlaWatchdog:
    """Periodic overdue-cleaning sweep over all checkpoints."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_gap_hours: float = DEFAULT_MAX_GAP_HOURS,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        flag_never_cleaned: bool = False,
    ):
        self.session_factory = session_factory
        self.max_gap_hours = max_gap_hours
        self.chunk_size = chunk_size
        self.flag_never_cleaned = flag_never_cleaned

    @classmethod
    def from_config(
        cls, session_factory: async_sessionmaker[AsyncSession], config: WatchdogConfig
    ) -> SlaWatchdog:
        return cls(
            session_factory,
            max_gap_hours=config.default_max_gap_hours,
            chunk_size=config.alert_lookup_chunk_size,
            flag_never_cleaned=config.flag_never_cleaned,
        )

    async def run(self, now: datetime | None = None) -> WatchdogResult:
        """Run one sweep.

        Alert inserts commit as one batch, then checkpoint statuses flip to
        OVERDUE in a second batch. If the second batch fails the alerts stay;
        the next sweep does not duplicate them and the next verified log
        resets the status anyway.

        Raises:
            SQLAlchemyError: If any store access fails (the scheduler retries)
        """
        now = as_naive_utc(now) if now else utcnow()
        threshold = now - timedelta(hours=self.max_gap_hours)
        result = WatchdogResult()

        logger.info("watchdog_started", now=to_iso(now), threshold=to_iso(threshold))

        try:
            async with self.session_factory() as session:
                overdue = await self._find_overdue(session, threshold)
                if not overdue:
                    logger.info("watchdog_all_compliant")
                    return result

                result.overdue = len(overdue)
                existing = await AlertService(session).find_open_missing_clean(
                    [checkpoint.id for checkpoint in overdue], self.chunk_size
                )

            pending = []
            for checkpoint in overdue:
                if checkpoint.id in existing:
                    logger.debug("watchdog_alert_already_open", checkpoint_id=checkpoint.id)
                    result.already_open += 1
                    continue
                pending.append(checkpoint)

            if not pending:
                logger.info("watchdog_overdue_already_alerted", overdue=result.overdue)
                return result

            async with self.session_factory() as session:
                async with session.begin():
                    alerts = AlertService(session)
                    for checkpoint in pending:
                        hours_overdue = self._hours_overdue(checkpoint, now)
                        alerts.stage_missing_clean_alert(
                            checkpoint, hours_overdue, self.max_gap_hours
                        )
                        logger.info(
                            "watchdog_alert_queued",
                            checkpoint_id=checkpoint.id,
                            hours_overdue=hours_overdue,
                        )

            result.alerts_created = len(pending)
            result.flagged_checkpoint_ids = [checkpoint.id for checkpoint in pending]
            logger.info("watchdog_alerts_created", count=result.alerts_created)

            async with self.session_factory() as session:
                async with session.begin():
                    marked = await FacilityStateUpdater(session).mark_overdue(
                        result.flagged_checkpoint_ids, stale_before=threshold
                    )
            logger.info("watchdog_statuses_overdue", count=marked)

        except Exception:
            logger.exception("watchdog_failed")
            raise

        return result

    async def _find_overdue(
        self, session: AsyncSession, threshold: datetime
    ) -> list[CheckpointModel]:
        stale = CheckpointModel.last_cleaned_timestamp < threshold
        if self.flag_never_cleaned:
            stale = or_(stale, CheckpointModel.last_cleaned_timestamp.is_(None))

        rows = await session.execute(
            select(CheckpointModel)
            .where(CheckpointModel.is_active.is_(True), stale)
            .order_by(CheckpointModel.id)
        )
        return list(rows.scalars())

    @staticmethod
    def _hours_overdue(checkpoint: CheckpointModel, now: datetime) -> float | None:
        if checkpoint.last_cleaned_timestamp is None:
            return None
        return ms_to_hours(millis_between(checkpoint.last_cleaned_timestamp, now))
