"""Cleaner streaks and supervisor spot checks.

Every Nth consecutive verified log by the same cleaner triggers a manual
audit request. A rejected log breaks the streak.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cleanvee.alerts.service import AlertService
from cleanvee.db.models import UserModel
from cleanvee.models import CleaningLog

logger = structlog.get_logger(__name__)

DEFAULT_AUDIT_STREAK_THRESHOLD = 10


@dataclass
class StreakUpdate:
    streak: int
    audit_requested: bool = False
    duplicate: bool = False


class CleanerAuditTrigger:
    """Streak bookkeeping; must run inside a transaction owned by the caller."""

    def __init__(
        self,
        session: AsyncSession,
        threshold: int = DEFAULT_AUDIT_STREAK_THRESHOLD,
    ):
        self.session = session
        self.threshold = threshold

    async def register_verified_log(self, log_id: str, log: CleaningLog) -> StreakUpdate:
        """Increment the cleaner's streak; at the threshold request an audit and reset.

        The user row is locked for the read-increment-write. The log id is
        remembered so a redelivered event does not count twice.
        """
        user = await self._locked_user(log.cleaner_id)

        if user.last_streak_log_id == log_id:
            logger.info("streak_duplicate_delivery", cleaner_id=log.cleaner_id, log_id=log_id)
            return StreakUpdate(streak=user.verified_streak, duplicate=True)

        new_streak = (user.verified_streak or 0) + 1
        user.last_streak_log_id = log_id

        if new_streak >= self.threshold:
            logger.info(
                "streak_threshold_reached",
                cleaner_id=log.cleaner_id,
                streak=new_streak,
            )
            await AlertService(self.session).create_audit_request(log, new_streak)
            user.verified_streak = 0
            await self.session.flush()
            return StreakUpdate(streak=0, audit_requested=True)

        user.verified_streak = new_streak
        await self.session.flush()
        return StreakUpdate(streak=new_streak)

    async def reset_streak(self, cleaner_id: str) -> None:
        user = await self.session.get(UserModel, cleaner_id)
        if user is None:
            self.session.add(UserModel(id=cleaner_id, verified_streak=0))
        else:
            user.verified_streak = 0
        await self.session.flush()
        logger.info("streak_reset", cleaner_id=cleaner_id)

    async def _locked_user(self, cleaner_id: str) -> UserModel:
        result = await self.session.execute(
            select(UserModel).where(UserModel.id == cleaner_id).with_for_update()
        )
        user = result.scalar_one_or_none()
        if user is None:
            user = UserModel(id=cleaner_id, verified_streak=0)
            self.session.add(user)
        return user
