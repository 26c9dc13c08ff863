"""Startup validation for Cleanvee.

Fail fast when the database is unreachable or the schema is missing, and warn
loudly about buildings whose SLA configuration would silently fall back to one
cleaning per day.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cleanvee.config import get_config
from cleanvee.db.models import BuildingModel, CheckpointModel

logger = logging.getLogger(__name__)


class StartupValidationError(Exception):
    """Raised when startup validation fails."""
    pass


async def validate_database_connection(session: AsyncSession) -> None:
    """Validate database connection and schema.

    Args:
        session: Database session

    Raises:
        StartupValidationError: If database connection or schema is invalid
    """
    try:
        result = await session.execute(select(func.count()).select_from(CheckpointModel))
        checkpoint_count = result.scalar()

        logger.info(f"✓ Database connection OK ({checkpoint_count} checkpoints)")

    except SQLAlchemyError as e:
        raise StartupValidationError(
            f"Database connection failed: {e}. "
            "Check DATABASE_URL and run `cleanvee init` to create the schema."
        ) from e


async def validate_building_configs(session: AsyncSession) -> list[str]:
    """Warn about buildings with a missing or non-positive cleaning frequency.

    Such buildings are treated as one cleaning per day by the SLA calculator.

    Returns:
        Ids of the misconfigured buildings
    """
    result = await session.execute(
        select(BuildingModel.id).where(
            or_(
                BuildingModel.required_cleanings_per_day.is_(None),
                BuildingModel.required_cleanings_per_day < 1,
            )
        )
    )
    invalid = [row[0] for row in result.all()]

    if invalid:
        logger.warning(
            f"⚠ {len(invalid)} buildings have an invalid required_cleanings_per_day "
            f"({', '.join(invalid[:10])}). Breach checks will assume 1 cleaning per day."
        )
    else:
        logger.info("✓ Building SLA configs OK")
    return invalid


def validate_thresholds() -> None:
    """Check configured thresholds are usable.

    Raises:
        StartupValidationError: If a threshold is out of range
    """
    config = get_config()

    if not 0 <= config.quality.min_quality_score <= 100:
        raise StartupValidationError(
            f"MIN_QUALITY_SCORE must be between 0 and 100, got {config.quality.min_quality_score}"
        )
    if config.streak.audit_streak_threshold < 1:
        raise StartupValidationError(
            f"AUDIT_STREAK_THRESHOLD must be >= 1, got {config.streak.audit_streak_threshold}"
        )
    if config.watchdog.default_max_gap_hours <= 0:
        raise StartupValidationError(
            "SLA_DEFAULT_MAX_GAP_HOURS must be positive, "
            f"got {config.watchdog.default_max_gap_hours}"
        )
    if config.watchdog.alert_lookup_chunk_size < 1:
        raise StartupValidationError(
            "ALERT_LOOKUP_CHUNK_SIZE must be >= 1, "
            f"got {config.watchdog.alert_lookup_chunk_size}"
        )

    logger.info(
        f"✓ Thresholds: quality < {config.quality.min_quality_score}, "
        f"streak {config.streak.audit_streak_threshold}, "
        f"watchdog {config.watchdog.default_max_gap_hours:g}h"
    )


async def run_startup_validation(session: AsyncSession | None = None) -> None:
    """Run all startup validations.

    Args:
        session: Database session (optional, will warn if not provided)

    Raises:
        StartupValidationError: If any critical validation fails
    """
    logger.info("Running startup validations...")

    validate_thresholds()

    if session is not None:
        await validate_database_connection(session)
        await validate_building_configs(session)
    else:
        logger.warning("⚠ Database session not provided, skipping DB validations")

    logger.info("✓ All startup validations passed")
