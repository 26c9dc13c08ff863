"""Reaction to a newly created cleaning log.

Delivery is at-least-once. On a replay the quality alert is written again
(quality alerts are never deduplicated). Everything else is replay-safe:
state updates are compare-and-set, already resolved alerts are skipped and
the streak remembers the last log it counted.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cleanvee.alerts.service import DEFAULT_MIN_QUALITY_SCORE, AlertService
from cleanvee.audit.streak import DEFAULT_AUDIT_STREAK_THRESHOLD, CleanerAuditTrigger
from cleanvee.config import AppConfig
from cleanvee.db.models import AlertModel, BuildingModel, CheckpointModel
from cleanvee.facility.state import FacilityStateUpdater
from cleanvee.models import CleaningLog, LogStatus
from cleanvee.sla.calculator import is_breach, max_gap_for_building
from cleanvee.sla.events import SlaEventRecorder
from cleanvee.utils.timestamps import millis_between, parse_iso, to_iso

logger = structlog.get_logger(__name__)

AlertNotifier = Callable[[AlertModel], Awaitable[bool]]


@dataclass
class LogOutcome:
    """What one reactor run changed."""

    log_id: str
    status: str
    alert_type: str | None = None
    state_updated: bool = False
    alerts_resolved: int = 0
    breach_recorded: bool = False
    streak: int | None = None
    audit_requested: bool = False
    streak_reset: bool = False
    skipped_reason: str | None = None


class LogCreatedReactor:
    """Orchestrates alerting, freshness, SLA audit and streaks for one log."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        min_quality_score: int = DEFAULT_MIN_QUALITY_SCORE,
        audit_streak_threshold: int = DEFAULT_AUDIT_STREAK_THRESHOLD,
        notifier: AlertNotifier | None = None,
    ):
        self.session_factory = session_factory
        self.min_quality_score = min_quality_score
        self.audit_streak_threshold = audit_streak_threshold
        self.notifier = notifier

    @classmethod
    def from_config(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        config: AppConfig,
        notifier: AlertNotifier | None = None,
    ) -> LogCreatedReactor:
        return cls(
            session_factory,
            min_quality_score=config.quality.min_quality_score,
            audit_streak_threshold=config.streak.audit_streak_threshold,
            notifier=notifier,
        )

    async def handle(self, log_id: str, log: CleaningLog) -> LogOutcome:
        """Process one cleaning log.

        Raises:
            Exception: Anything other than a streak failure is logged and
                re-raised so the delivery layer retries the event.
        """
        if log.id is None:
            log = log.model_copy(update={"id": log_id})
        outcome = LogOutcome(log_id=log_id, status=log.status)

        with structlog.contextvars.bound_contextvars(log_id=log_id):
            logger.info("log_processing_started", status=log.status)
            try:
                alert = await self._raise_quality_alert(log_id, log)
                if alert is not None:
                    outcome.alert_type = alert.type
                    await self._notify(alert)

                if log.status == LogStatus.VERIFIED.value:
                    await self._apply_verified(log_id, log, outcome)
                    if outcome.skipped_reason is None:
                        await self._count_streak(log_id, log, outcome)
                else:
                    logger.info("log_not_verified", status=log.status)
                    if log.status == LogStatus.REJECTED.value:
                        await self._reset_streak(log.cleaner_id)
                        outcome.streak_reset = True
                        outcome.streak = 0
            except Exception:
                logger.exception("log_processing_failed")
                raise

            logger.info("log_processing_finished")
        return outcome

    async def _raise_quality_alert(self, log_id: str, log: CleaningLog) -> AlertModel | None:
        async with self.session_factory() as session:
            async with session.begin():
                return await AlertService(
                    session, self.min_quality_score
                ).create_safety_alert(log_id, log)

    async def _apply_verified(self, log_id: str, log: CleaningLog, outcome: LogOutcome) -> None:
        """Freshness, alert resolution and breach check in one transaction.

        The checkpoint row is locked and its previous last_cleaned_at read
        before the update overwrites it. Open missing-clean alerts are only
        resolved when this log advanced freshness; an older late log leaves
        them open.
        """
        async with self.session_factory() as session:
            async with session.begin():
                checkpoint = await session.get(
                    CheckpointModel, log.checkpoint_id, with_for_update=True
                )
                if checkpoint is None:
                    logger.warning("checkpoint_not_found", checkpoint_id=log.checkpoint_id)
                    outcome.skipped_reason = "checkpoint_not_found"
                    return

                previous_cleaned_at = checkpoint.last_cleaned_at
                building = await session.get(
                    BuildingModel, checkpoint.building_id or log.building_id
                )

                outcome.state_updated = await FacilityStateUpdater(
                    session
                ).update_checkpoint_state(log.checkpoint_id, to_iso(log.created_at))
                if outcome.state_updated:
                    outcome.alerts_resolved = await AlertService(
                        session
                    ).resolve_missing_clean_alerts(log.checkpoint_id, log_id)
                outcome.breach_recorded = await self._check_breach_recovery(
                    session, log_id, log, previous_cleaned_at, building
                )

        logger.info("verified_log_applied", checkpoint_id=log.checkpoint_id)

    async def _check_breach_recovery(
        self,
        session: AsyncSession,
        log_id: str,
        log: CleaningLog,
        previous_cleaned_at: str | None,
        building: BuildingModel | None,
    ) -> bool:
        if building is None:
            logger.warning("building_not_found", building_id=log.building_id)
            return False
        if not previous_cleaned_at:
            logger.info("first_cleaning", checkpoint_id=log.checkpoint_id)
            return False

        allowed_ms = max_gap_for_building(building)
        gap_ms = millis_between(parse_iso(previous_cleaned_at), log.created_at)
        if not is_breach(gap_ms, allowed_ms):
            return False

        await SlaEventRecorder(session).record_breach_recovery(
            log, log_id, previous_cleaned_at, gap_ms, allowed_ms
        )
        return True

    async def _count_streak(self, log_id: str, log: CleaningLog, outcome: LogOutcome) -> None:
        # Alerts and freshness are already committed; a streak failure only loses a count.
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    update = await CleanerAuditTrigger(
                        session, self.audit_streak_threshold
                    ).register_verified_log(log_id, log)
        except SQLAlchemyError:
            logger.exception("streak_update_failed", cleaner_id=log.cleaner_id)
            return

        outcome.streak = update.streak
        outcome.audit_requested = update.audit_requested

    async def _reset_streak(self, cleaner_id: str) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await CleanerAuditTrigger(session).reset_streak(cleaner_id)

    async def _notify(self, alert: AlertModel) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier(alert)
        except Exception:
            logger.exception("alert_notification_failed", alert_id=alert.id)
