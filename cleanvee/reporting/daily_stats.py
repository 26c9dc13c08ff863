"""Daily per-building counters.

The dashboard reads one stats row per building and day instead of counting
cleaning logs. Counters are increments, so a redelivered event counts twice;
these numbers are informational and that is accepted.
"""

from __future__ import annotations

from datetime import date

import structlog
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cleanvee.db.connection import session_scope
from cleanvee.db.models import DailyStatsModel
from cleanvee.models import CleaningLog
from cleanvee.utils.timestamps import as_naive_utc, utcnow

logger = structlog.get_logger(__name__)

UNKNOWN_BUILDING = "unknown_building"


def stats_row_id(building_id: str | None, day: date) -> str:
    return f"{building_id or UNKNOWN_BUILDING}_{day.isoformat()}"


def _dialect_insert(session: AsyncSession):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"daily stats upsert not supported on {dialect}")


async def aggregate_log_stats(session: AsyncSession, log: CleaningLog) -> DailyStatsModel:
    """Add one log to its building's stats row for the log's UTC day.

    A single INSERT ... ON CONFLICT DO UPDATE, so concurrent first writes for
    the same building and day both land as increments.
    """
    building_id = log.building_id or UNKNOWN_BUILDING
    day = as_naive_utc(log.created_at).date()
    row_id = stats_row_id(building_id, day)

    insert = _dialect_insert(session)
    stmt = insert(DailyStatsModel).values(
        id=row_id,
        building_id=building_id,
        stats_date=day,
        total_logs=1,
        verified_count=1 if log.is_verified else 0,
        avg_score_sum=float(log.overall_score or 0),
        last_updated=utcnow(),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["id"],
        set_={
            "total_logs": DailyStatsModel.total_logs + stmt.excluded.total_logs,
            "verified_count": DailyStatsModel.verified_count + stmt.excluded.verified_count,
            "avg_score_sum": DailyStatsModel.avg_score_sum + stmt.excluded.avg_score_sum,
            "last_updated": stmt.excluded.last_updated,
        },
    )
    await session.execute(stmt)

    return await session.get(DailyStatsModel, row_id, populate_existing=True)


async def record_log_stats(
    session_factory: async_sessionmaker[AsyncSession], log: CleaningLog
) -> bool:
    """Best-effort wrapper: store errors are logged, not raised."""
    try:
        async with session_scope(session_factory) as session:
            stats = await aggregate_log_stats(session, log)
    except SQLAlchemyError:
        logger.exception("daily_stats_failed", building_id=log.building_id)
        return False

    logger.info("daily_stats_updated", stats_id=stats.id, total_logs=stats.total_logs)
    return True
