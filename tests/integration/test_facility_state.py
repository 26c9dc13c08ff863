"""Integration tests for checkpoint freshness updates."""

from __future__ import annotations

from datetime import datetime

import pytest

from cleanvee.db.models import CheckpointModel
from cleanvee.facility import FacilityStateUpdater


async def _update(session_factory, checkpoint_id: str, cleaned_at: str) -> bool:
    async with session_factory() as session:
        async with session.begin():
            return await FacilityStateUpdater(session).update_checkpoint_state(
                checkpoint_id, cleaned_at
            )


async def _checkpoint(session_factory, checkpoint_id: str = "cp-1") -> CheckpointModel:
    async with session_factory() as session:
        return await session.get(CheckpointModel, checkpoint_id)


class TestUpdateCheckpointState:
    @pytest.mark.asyncio
    async def test_sets_both_fields_and_clean_status(self, session_factory, seed):
        await seed.checkpoint()

        assert await _update(session_factory, "cp-1", "2024-05-01T08:30:00.000Z")

        checkpoint = await _checkpoint(session_factory)
        assert checkpoint.last_cleaned_at == "2024-05-01T08:30:00.000Z"
        assert checkpoint.last_cleaned_timestamp == datetime(2024, 5, 1, 8, 30)
        assert checkpoint.current_status == "CLEAN"
        assert checkpoint.updated_at is not None

    @pytest.mark.asyncio
    async def test_same_value_twice_is_idempotent(self, session_factory, seed):
        await seed.checkpoint()

        await _update(session_factory, "cp-1", "2024-05-01T08:30:00.000Z")
        first = await _checkpoint(session_factory)
        await _update(session_factory, "cp-1", "2024-05-01T08:30:00.000Z")
        second = await _checkpoint(session_factory)

        assert second.last_cleaned_at == first.last_cleaned_at
        assert second.last_cleaned_timestamp == first.last_cleaned_timestamp
        assert second.current_status == "CLEAN"

    @pytest.mark.asyncio
    async def test_older_value_does_not_move_backwards(self, session_factory, seed):
        await seed.checkpoint(last_cleaned=datetime(2024, 5, 1, 10, 0))

        applied = await _update(session_factory, "cp-1", "2024-05-01T08:00:00.000Z")

        assert applied is False
        checkpoint = await _checkpoint(session_factory)
        assert checkpoint.last_cleaned_timestamp == datetime(2024, 5, 1, 10, 0)

    @pytest.mark.asyncio
    async def test_overdue_checkpoint_becomes_clean(self, session_factory, seed):
        await seed.checkpoint(last_cleaned=datetime(2024, 5, 1, 2, 0))
        async with session_factory() as session:
            async with session.begin():
                await FacilityStateUpdater(session).mark_overdue(["cp-1"])
        assert (await _checkpoint(session_factory)).current_status == "OVERDUE"

        assert await _update(session_factory, "cp-1", "2024-05-01T09:00:00Z")

        assert (await _checkpoint(session_factory)).current_status == "CLEAN"

    @pytest.mark.asyncio
    async def test_missing_checkpoint_returns_false(self, session_factory):
        assert await _update(session_factory, "nope", "2024-05-01T08:00:00.000Z") is False

    @pytest.mark.asyncio
    async def test_invalid_timestamp_raises(self, session_factory, seed):
        await seed.checkpoint()
        with pytest.raises(ValueError):
            await _update(session_factory, "cp-1", "not-a-date")


class TestMarkOverdue:
    @pytest.mark.asyncio
    async def test_empty_list_is_noop(self, session_factory):
        async with session_factory() as session:
            async with session.begin():
                assert await FacilityStateUpdater(session).mark_overdue([]) == 0

    @pytest.mark.asyncio
    async def test_freshly_cleaned_checkpoint_keeps_clean_status(self, session_factory, seed):
        await seed.checkpoint("cp-stale", last_cleaned=datetime(2024, 5, 1, 2, 0))
        await seed.checkpoint("cp-fresh", last_cleaned=datetime(2024, 5, 1, 2, 0))
        await _update(session_factory, "cp-fresh", "2024-05-01T11:55:00.000Z")

        async with session_factory() as session:
            async with session.begin():
                marked = await FacilityStateUpdater(session).mark_overdue(
                    ["cp-stale", "cp-fresh"], stale_before=datetime(2024, 5, 1, 8, 0)
                )

        assert marked == 1
        assert (await _checkpoint(session_factory, "cp-stale")).current_status == "OVERDUE"
        assert (await _checkpoint(session_factory, "cp-fresh")).current_status == "CLEAN"

    @pytest.mark.asyncio
    async def test_never_cleaned_checkpoint_is_stale(self, session_factory, seed):
        await seed.checkpoint()

        async with session_factory() as session:
            async with session.begin():
                marked = await FacilityStateUpdater(session).mark_overdue(
                    ["cp-1"], stale_before=datetime(2024, 5, 1, 8, 0)
                )

        assert marked == 1
        assert (await _checkpoint(session_factory)).current_status == "OVERDUE"
