"""Integration tests for the daily per-building counters."""

from __future__ import annotations

import asyncio
from datetime import date, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cleanvee.db.connection import init_db
from cleanvee.db.models import DailyStatsModel
from cleanvee.reporting import record_log_stats, stats_row_id


@pytest_asyncio.fixture()
async def file_session_factory(tmp_path) -> async_sessionmaker[AsyncSession]:
    """File-backed database so each session gets its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'stats.db'}")
    await init_db(engine)
    try:
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await engine.dispose()


async def _stats(session_factory, row_id: str) -> DailyStatsModel | None:
    async with session_factory() as session:
        return await session.get(DailyStatsModel, row_id)


def test_stats_row_id():
    assert stats_row_id("bldg-1", date(2024, 5, 1)) == "bldg-1_2024-05-01"
    assert stats_row_id(None, date(2024, 5, 1)) == "unknown_building_2024-05-01"


class TestRecordLogStats:
    @pytest.mark.asyncio
    async def test_counters_accumulate(self, session_factory, log_factory, now):
        await record_log_stats(session_factory, log_factory(created_at=now, score=80))
        await record_log_stats(session_factory, log_factory(created_at=now, score=60, status="rejected"))
        assert await record_log_stats(session_factory, log_factory(created_at=now, with_quality=False))

        stats = await _stats(session_factory, "bldg-1_2024-05-01")
        assert stats.total_logs == 3
        assert stats.verified_count == 2
        assert stats.avg_score_sum == 140.0
        assert stats.stats_date == date(2024, 5, 1)
        assert stats.last_updated is not None

    @pytest.mark.asyncio
    async def test_separate_rows_per_day_and_building(self, session_factory, log_factory, now):
        await record_log_stats(session_factory, log_factory(created_at=now))
        await record_log_stats(session_factory, log_factory(created_at=now + timedelta(days=1)))
        await record_log_stats(session_factory, log_factory(created_at=now, building_id="bldg-2"))

        assert (await _stats(session_factory, "bldg-1_2024-05-01")).total_logs == 1
        assert (await _stats(session_factory, "bldg-1_2024-05-02")).total_logs == 1
        assert (await _stats(session_factory, "bldg-2_2024-05-01")).total_logs == 1

    @pytest.mark.asyncio
    async def test_concurrent_first_writes_all_count(self, file_session_factory, log_factory, now):
        logs = [log_factory(created_at=now, score=50 + i) for i in range(5)]

        results = await asyncio.gather(
            *(record_log_stats(file_session_factory, log) for log in logs)
        )

        assert results == [True] * 5
        stats = await _stats(file_session_factory, "bldg-1_2024-05-01")
        assert stats.total_logs == 5
        assert stats.verified_count == 5
        assert stats.avg_score_sum == 260.0
