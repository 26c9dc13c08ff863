"""arq worker: event reactors and the scheduled SLA watchdog.

Run with ``arq cleanvee.worker.WorkerSettings``.
"""

from dataclasses import asdict
from typing import Any

import structlog
from arq import Retry, cron
from sqlalchemy.exc import SQLAlchemyError

from cleanvee.config import WatchdogConfig, WorkerConfig, get_config
from cleanvee.core.logging import configure_logging
from cleanvee.core.queue import get_redis_settings
from cleanvee.db.connection import create_engine_from_config, create_session_factory
from cleanvee.db.queries import fetch_cleaning_log, fetch_occupant_feedback
from cleanvee.notifications.slack import notify_alert
from cleanvee.reactors import LogCreatedReactor, OccupantFeedbackReactor
from cleanvee.reporting.daily_stats import record_log_stats
from cleanvee.sla.watchdog import SlaWatchdog
from cleanvee.startup_validation import run_startup_validation

logger = structlog.get_logger(__name__)

# Errors worth another attempt; anything else is a bug and fails the job
RETRYABLE_ERRORS = (SQLAlchemyError, ConnectionError, TimeoutError)

_worker_config = WorkerConfig.from_env()
_watchdog_config = WatchdogConfig.from_env()


async def startup(ctx: dict[str, Any]) -> None:
    """Initialize resources when worker starts."""
    config = get_config()
    configure_logging(config.log_level, config.log_format)

    engine = create_engine_from_config(config.db)
    ctx["engine"] = engine
    ctx["session_maker"] = create_session_factory(engine)
    ctx["config"] = config

    async with ctx["session_maker"]() as session:
        await run_startup_validation(session)

    logger.info("worker_started")


async def shutdown(ctx: dict[str, Any]) -> None:
    """Cleanup resources when worker stops."""
    engine = ctx.get("engine")
    if engine is not None:
        await engine.dispose()
    logger.info("worker_stopped")


def _retry_if_allowed(ctx: dict[str, Any], exc: Exception) -> None:
    """Raise an arq Retry with linear backoff for a transient failure.

    On the last allowed try this returns, and the caller re-raises the
    original error so the job fails with it.

    Raises:
        Retry: If the job has tries left
    """
    job_try = ctx.get("job_try", 1)
    config = ctx["config"].worker
    if job_try >= config.max_tries:
        logger.error("job_retries_exhausted", job_try=job_try, error=str(exc))
        return
    defer = job_try * config.retry_delay_seconds
    logger.warning("job_retry_scheduled", job_try=job_try, defer_seconds=defer, error=str(exc))
    raise Retry(defer=defer) from exc


async def on_log_created(ctx: dict[str, Any], log_id: str) -> dict[str, Any]:
    """Run the log-created reactor for one cleaning log."""
    session_maker = ctx["session_maker"]

    with structlog.contextvars.bound_contextvars(job_id=ctx.get("job_id")):
        try:
            async with session_maker() as session:
                log = await fetch_cleaning_log(session, log_id)
            if log is None:
                logger.warning("cleaning_log_not_found", log_id=log_id)
                return {"status": "skipped", "reason": "log_not_found", "log_id": log_id}

            reactor = LogCreatedReactor.from_config(
                session_maker, ctx["config"], notifier=notify_alert
            )
            outcome = await reactor.handle(log_id, log)
        except RETRYABLE_ERRORS as e:
            _retry_if_allowed(ctx, e)
            raise

    return {"status": "processed", **asdict(outcome)}


async def aggregate_log_stats(ctx: dict[str, Any], log_id: str) -> dict[str, Any]:
    """Add one cleaning log to the daily dashboard counters."""
    session_maker = ctx["session_maker"]

    async with session_maker() as session:
        log = await fetch_cleaning_log(session, log_id)
    if log is None:
        logger.warning("cleaning_log_not_found", log_id=log_id)
        return {"status": "skipped", "reason": "log_not_found", "log_id": log_id}

    updated = await record_log_stats(session_maker, log)
    return {"status": "updated" if updated else "failed", "log_id": log_id}


async def on_occupant_feedback(ctx: dict[str, Any], feedback_id: str) -> dict[str, Any]:
    """Flag the latest verified log when an occupant complains."""
    session_maker = ctx["session_maker"]

    with structlog.contextvars.bound_contextvars(job_id=ctx.get("job_id")):
        try:
            async with session_maker() as session:
                feedback = await fetch_occupant_feedback(session, feedback_id)
            if feedback is None:
                logger.warning("feedback_not_found", feedback_id=feedback_id)
                return {"status": "skipped", "reason": "feedback_not_found"}

            flagged_log_id = await OccupantFeedbackReactor(session_maker).handle(
                feedback_id, feedback
            )
        except RETRYABLE_ERRORS as e:
            _retry_if_allowed(ctx, e)
            raise

    return {
        "status": "flagged" if flagged_log_id else "unchanged",
        "feedback_id": feedback_id,
        "flagged_log_id": flagged_log_id,
    }


async def check_sla_compliance(ctx: dict[str, Any]) -> dict[str, Any]:
    """Scheduled sweep raising SLA_MISSING_CLEAN alerts for overdue checkpoints."""
    watchdog = SlaWatchdog.from_config(ctx["session_maker"], ctx["config"].watchdog)

    try:
        result = await watchdog.run()
    except RETRYABLE_ERRORS as e:
        _retry_if_allowed(ctx, e)
        raise

    return asdict(result)


class WorkerSettings:
    functions = [
        on_log_created,
        aggregate_log_stats,
        on_occupant_feedback,
        check_sla_compliance,
    ]
    cron_jobs = [
        cron(
            check_sla_compliance,
            minute=set(range(0, 60, _watchdog_config.interval_minutes)),
            unique=True,
        )
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = get_redis_settings(_worker_config.redis_url)
    job_timeout = _worker_config.job_timeout_seconds
    max_tries = _worker_config.max_tries
