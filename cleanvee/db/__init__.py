"""Database layer for Cleanvee with async SQLAlchemy."""

from cleanvee.db.connection import (
    create_engine_from_config,
    create_session_factory,
    init_db,
    session_scope,
)
from cleanvee.db.models import (
    AlertModel,
    Base,
    BuildingModel,
    CheckpointModel,
    CleaningLogModel,
    DailyStatsModel,
    OccupantFeedbackModel,
    SlaEventModel,
    UserModel,
)

__all__ = [
    "Base",
    "AlertModel",
    "BuildingModel",
    "CheckpointModel",
    "CleaningLogModel",
    "DailyStatsModel",
    "OccupantFeedbackModel",
    "SlaEventModel",
    "UserModel",
    "create_engine_from_config",
    "create_session_factory",
    "init_db",
    "session_scope",
]
