"""arq queue helpers.

Producers (the capture API, replay tooling) call the dispatch_* functions when
a document is created. Job ids are derived from the document id, so a second
enqueue for the same document is dropped by arq while the first is queued or
its result is kept.
"""

import os

from arq.connections import ArqRedis, RedisSettings, create_pool
from arq.jobs import Job


def get_redis_settings(redis_url: str | None = None) -> RedisSettings:
    """Get Redis settings from the given URL or environment variables."""
    return RedisSettings.from_dsn(
        redis_url or os.environ.get("REDIS_URL", "redis://redis:6379")
    )


async def get_queue(redis_url: str | None = None) -> ArqRedis:
    """Create a connection pool to the Redis queue."""
    return await create_pool(get_redis_settings(redis_url))


def log_created_job_id(log_id: str) -> str:
    return f"log-created:{log_id}"


def log_stats_job_id(log_id: str) -> str:
    return f"log-stats:{log_id}"


def feedback_job_id(feedback_id: str) -> str:
    return f"occupant-feedback:{feedback_id}"


async def dispatch_log_created(pool: ArqRedis, log_id: str) -> list[Job]:
    """Enqueue the reactors for a new cleaning log.

    Returns the jobs that were actually enqueued (duplicates are skipped).
    """
    jobs = [
        await pool.enqueue_job(
            "on_log_created", log_id, _job_id=log_created_job_id(log_id)
        ),
        await pool.enqueue_job(
            "aggregate_log_stats", log_id, _job_id=log_stats_job_id(log_id)
        ),
    ]
    return [job for job in jobs if job is not None]


async def dispatch_occupant_feedback(pool: ArqRedis, feedback_id: str) -> Job | None:
    """Enqueue the feedback reactor for a new occupant complaint."""
    return await pool.enqueue_job(
        "on_occupant_feedback", feedback_id, _job_id=feedback_job_id(feedback_id)
    )
