"""Occupant complaints downgrade the latest verified cleaning.

This is the only path that changes a cleaning log after it was created.
"""

from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cleanvee.db.models import CleaningLogModel
from cleanvee.models import LogStatus, OccupantFeedback

logger = structlog.get_logger(__name__)


def build_flag_reason(feedback: OccupantFeedback) -> str:
    return f"Occupant reported {feedback.type}: {feedback.details or 'No details provided'}"


class OccupantFeedbackReactor:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def handle(self, feedback_id: str, feedback: OccupantFeedback) -> str | None:
        """Flag the checkpoint's most recent verified log for review.

        Returns:
            Id of the flagged log, or None if nothing was changed
        """
        if not feedback.is_negative:
            logger.info("feedback_ignored", feedback_id=feedback_id, type=feedback.type)
            return None

        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(CleaningLogModel)
                    .where(
                        CleaningLogModel.checkpoint_id == feedback.checkpoint_id,
                        CleaningLogModel.verification_status == LogStatus.VERIFIED.value,
                    )
                    .order_by(CleaningLogModel.created_at.desc())
                    .limit(1)
                    .with_for_update()
                )
                log = result.scalar_one_or_none()
                if log is None:
                    logger.info(
                        "feedback_no_verified_log",
                        feedback_id=feedback_id,
                        checkpoint_id=feedback.checkpoint_id,
                    )
                    return None

                log.verification_status = LogStatus.FLAGGED.value
                log.flag_reason = build_flag_reason(feedback)

        logger.info("log_flagged_by_feedback", log_id=log.id, feedback_id=feedback_id)
        return log.id
