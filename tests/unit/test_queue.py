"""Unit tests for arq dispatch helpers (fake pool, no Redis)."""

from __future__ import annotations

import pytest

from cleanvee.core.queue import (
    dispatch_log_created,
    dispatch_occupant_feedback,
    feedback_job_id,
    log_created_job_id,
    log_stats_job_id,
)


class FakePool:
    """Mimics ArqRedis.enqueue_job: a known job id returns None."""

    def __init__(self):
        self.calls: list[tuple[str, tuple, str]] = []
        self.seen: set[str] = set()

    async def enqueue_job(self, function: str, *args, _job_id: str | None = None):
        self.calls.append((function, args, _job_id))
        if _job_id in self.seen:
            return None
        self.seen.add(_job_id)
        return object()


def test_job_ids_are_deterministic():
    assert log_created_job_id("abc") == "log-created:abc"
    assert log_stats_job_id("abc") == "log-stats:abc"
    assert feedback_job_id("f1") == "occupant-feedback:f1"


@pytest.mark.asyncio
async def test_dispatch_log_created_enqueues_reactor_and_stats():
    pool = FakePool()

    jobs = await dispatch_log_created(pool, "log-1")

    assert len(jobs) == 2
    assert [call[0] for call in pool.calls] == ["on_log_created", "aggregate_log_stats"]
    assert pool.calls[0] == ("on_log_created", ("log-1",), "log-created:log-1")


@pytest.mark.asyncio
async def test_duplicate_dispatch_is_dropped():
    pool = FakePool()

    await dispatch_log_created(pool, "log-1")
    jobs = await dispatch_log_created(pool, "log-1")

    assert jobs == []


@pytest.mark.asyncio
async def test_dispatch_feedback():
    pool = FakePool()

    job = await dispatch_occupant_feedback(pool, "fb-1")

    assert job is not None
    assert pool.calls == [("on_occupant_feedback", ("fb-1",), "occupant-feedback:fb-1")]
