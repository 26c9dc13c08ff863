"""Pytest configuration and fixtures for Cleanvee tests.

Provides an in-memory SQLite store plus seed helpers for buildings,
checkpoints and cleaning logs.
"""

from __future__ import annotations

from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cleanvee.config import reset_config
from cleanvee.db.models import Base, BuildingModel, CheckpointModel, CleaningLogModel
from cleanvee.models import CleaningLog, ProofOfQuality, VerificationResult
from cleanvee.utils.timestamps import to_iso

NOW = datetime(2024, 5, 1, 12, 0, 0)


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.delenv("SLACK_WEBHOOK_URL", raising=False)
    monkeypatch.delenv("SLACK_NOTIFICATIONS_ENABLED", raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for watchdog and breach tests."""
    return NOW


@pytest_asyncio.fixture()
async def session_factory() -> async_sessionmaker[AsyncSession]:
    """In-memory database shared by every session the factory opens."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_factory) -> AsyncSession:
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


async def seed_building(
    session_factory, building_id: str = "bldg-1", required_cleanings_per_day: int = 6
) -> BuildingModel:
    async with session_factory() as session:
        async with session.begin():
            building = BuildingModel(
                id=building_id,
                name="HQ Tower",
                required_cleanings_per_day=required_cleanings_per_day,
                cleaning_window_start="06:00",
                cleaning_window_end="22:00",
            )
            session.add(building)
    return building


async def seed_checkpoint(
    session_factory,
    checkpoint_id: str = "cp-1",
    building_id: str = "bldg-1",
    last_cleaned: datetime | None = None,
    is_active: bool = True,
    location_label: str = "Restroom 3F",
) -> CheckpointModel:
    async with session_factory() as session:
        async with session.begin():
            checkpoint = CheckpointModel(
                id=checkpoint_id,
                building_id=building_id,
                location_label=location_label,
                floor_number=3,
                is_active=is_active,
                last_cleaned_at=to_iso(last_cleaned) if last_cleaned else None,
                last_cleaned_timestamp=last_cleaned,
                current_status="CLEAN" if last_cleaned else "UNKNOWN",
            )
            session.add(checkpoint)
    return checkpoint


def make_log(
    created_at: datetime = NOW,
    status: str = "verified",
    score: int | float | None = 90,
    hazards: list[str] | None = None,
    cleaner_id: str = "cleaner-1",
    checkpoint_id: str = "cp-1",
    building_id: str = "bldg-1",
    log_id: str | None = None,
    with_quality: bool = True,
) -> CleaningLog:
    quality = None
    if with_quality:
        quality = ProofOfQuality(
            overall_score=score,
            detected_objects=[{"label": label, "confidence": 0.9} for label in hazards or []],
        )
    return CleaningLog(
        id=log_id,
        cleaner_id=cleaner_id,
        checkpoint_id=checkpoint_id,
        building_id=building_id,
        created_at=created_at,
        proof_of_quality=quality,
        verification_result=VerificationResult(status=status),
    )


async def seed_log(session_factory, log_id: str, log: CleaningLog) -> CleaningLogModel:
    async with session_factory() as session:
        async with session.begin():
            model = CleaningLogModel(
                id=log_id,
                cleaner_id=log.cleaner_id,
                checkpoint_id=log.checkpoint_id,
                building_id=log.building_id,
                created_at=log.created_at,
                proof_of_quality=(
                    log.proof_of_quality.model_dump() if log.proof_of_quality else None
                ),
                verification_status=log.status,
            )
            session.add(model)
    return model


@pytest.fixture
def log_factory():
    """Build CleaningLog models: log_factory(status="rejected", score=40, ...)."""
    return make_log


@pytest.fixture
def seed(session_factory):
    """Seed helpers bound to the test database."""

    class Seeder:
        async def building(self, building_id: str = "bldg-1", required_cleanings_per_day: int = 6):
            return await seed_building(session_factory, building_id, required_cleanings_per_day)

        async def checkpoint(self, checkpoint_id: str = "cp-1", **kwargs):
            return await seed_checkpoint(session_factory, checkpoint_id, **kwargs)

        async def log(self, log_id: str, log: CleaningLog):
            return await seed_log(session_factory, log_id, log)

    return Seeder()
