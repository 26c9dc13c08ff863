"""Denormalized checkpoint freshness.

Keeping last_cleaned_at on the checkpoint lets the dashboard and the watchdog
answer "when was this room last cleaned" without scanning cleaning_logs.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

import structlog
from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from cleanvee.db.models import CheckpointModel
from cleanvee.models import CheckpointStatus
from cleanvee.utils.timestamps import parse_iso, utcnow

logger = structlog.get_logger(__name__)


class FacilityStateUpdater:
    """Writes derived checkpoint state on a caller-managed session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def update_checkpoint_state(self, checkpoint_id: str, cleaned_at: str) -> bool:
        """Mark the checkpoint CLEAN as of cleaned_at.

        Both last-cleaned fields are derived from the one cleaned_at value.
        The update is a compare-and-set: it only applies when the stored
        timestamp is empty or not newer, so replays are idempotent and an
        out-of-order older log never moves freshness backwards.

        Args:
            checkpoint_id: Checkpoint to update
            cleaned_at: ISO-8601 time of the verified cleaning

        Returns:
            True if the row was written, False if it is missing or already newer

        Raises:
            ValueError: If cleaned_at is not ISO-8601
        """
        cleaned_ts = parse_iso(cleaned_at)

        result = await self.session.execute(
            update(CheckpointModel)
            .where(
                CheckpointModel.id == checkpoint_id,
                or_(
                    CheckpointModel.last_cleaned_timestamp.is_(None),
                    CheckpointModel.last_cleaned_timestamp <= cleaned_ts,
                ),
            )
            .values(
                last_cleaned_at=cleaned_at,
                last_cleaned_timestamp=cleaned_ts,
                current_status=CheckpointStatus.CLEAN.value,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            logger.info(
                "checkpoint_state_not_advanced",
                checkpoint_id=checkpoint_id,
                cleaned_at=cleaned_at,
            )
            return False

        logger.info(
            "checkpoint_state_updated",
            checkpoint_id=checkpoint_id,
            last_cleaned_at=cleaned_at,
        )
        return True

    async def mark_overdue(
        self, checkpoint_ids: Sequence[str], stale_before: datetime | None = None
    ) -> int:
        """Set current_status = OVERDUE on the given checkpoints.

        With stale_before, only rows still never cleaned or cleaned before it
        are changed, so a verified log that landed after the sweep's query
        keeps its CLEAN status.
        """
        if not checkpoint_ids:
            return 0

        stmt = update(CheckpointModel).where(CheckpointModel.id.in_(list(checkpoint_ids)))
        if stale_before is not None:
            stmt = stmt.where(
                or_(
                    CheckpointModel.last_cleaned_timestamp.is_(None),
                    CheckpointModel.last_cleaned_timestamp < stale_before,
                )
            )

        result = await self.session.execute(
            stmt.values(current_status=CheckpointStatus.OVERDUE.value, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
