"""Read helpers that turn ORM rows into domain models."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cleanvee.db.models import CheckpointModel, CleaningLogModel, OccupantFeedbackModel
from cleanvee.models import CleaningLog, OccupantFeedback, VerificationResult


async def fetch_cleaning_log(session: AsyncSession, log_id: str) -> CleaningLog | None:
    model = await session.get(CleaningLogModel, log_id)
    if model is None:
        return None
    return to_cleaning_log(model)


async def fetch_occupant_feedback(
    session: AsyncSession, feedback_id: str
) -> OccupantFeedback | None:
    model = await session.get(OccupantFeedbackModel, feedback_id)
    if model is None:
        return None
    return OccupantFeedback(
        id=model.id,
        checkpoint_id=model.checkpoint_id,
        type=model.type,
        details=model.details,
        created_at=model.created_at,
    )


async def fetch_checkpoints(
    session: AsyncSession, building_id: str | None = None
) -> list[CheckpointModel]:
    """Return checkpoints ordered by building and label."""
    stmt = select(CheckpointModel).order_by(
        CheckpointModel.building_id, CheckpointModel.location_label
    )
    if building_id:
        stmt = stmt.where(CheckpointModel.building_id == building_id)
    result = await session.execute(stmt)
    return list(result.scalars())


def to_cleaning_log(model: CleaningLogModel) -> CleaningLog:
    return CleaningLog(
        id=model.id,
        cleaner_id=model.cleaner_id,
        checkpoint_id=model.checkpoint_id,
        building_id=model.building_id,
        created_at=model.created_at,
        proof_of_presence=model.proof_of_presence,
        proof_of_quality=model.proof_of_quality,
        verification_result=VerificationResult(
            status=model.verification_status,
            rejection_reason=model.rejection_reason,
            flag_reason=model.flag_reason,
        ),
    )
