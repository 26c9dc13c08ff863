"""Integration tests for startup validation."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from cleanvee.config import reset_config
from cleanvee.startup_validation import (
    StartupValidationError,
    run_startup_validation,
    validate_building_configs,
    validate_database_connection,
    validate_thresholds,
)


class TestDatabaseValidation:
    @pytest.mark.asyncio
    async def test_passes_with_schema(self, db_session, seed):
        await seed.checkpoint()
        await validate_database_connection(db_session)

    @pytest.mark.asyncio
    async def test_missing_schema_fails(self):
        engine = create_async_engine("sqlite+aiosqlite:///:memory:")
        try:
            async with AsyncSession(engine) as session:
                with pytest.raises(StartupValidationError, match="Database connection failed"):
                    await validate_database_connection(session)
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_building_configs_ok(self, db_session, seed):
        await seed.building(required_cleanings_per_day=4)
        assert await validate_building_configs(db_session) == []

    @pytest.mark.asyncio
    async def test_run_all(self, db_session):
        await run_startup_validation(db_session)

    @pytest.mark.asyncio
    async def test_run_without_session(self):
        await run_startup_validation(None)


class TestThresholds:
    def test_defaults_pass(self):
        validate_thresholds()

    @pytest.mark.parametrize(
        "name,value",
        [
            ("MIN_QUALITY_SCORE", "101"),
            ("AUDIT_STREAK_THRESHOLD", "0"),
            ("SLA_DEFAULT_MAX_GAP_HOURS", "0"),
            ("ALERT_LOOKUP_CHUNK_SIZE", "0"),
        ],
    )
    def test_out_of_range_fails(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        reset_config()

        with pytest.raises(StartupValidationError, match=name):
            validate_thresholds()
