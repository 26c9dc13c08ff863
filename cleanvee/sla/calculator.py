"""SLA gap math.

The allowed gap between two verified cleanings of one checkpoint is the day
divided evenly by the contracted cleanings per day. The building's cleaning
window is not taken into account.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from cleanvee.utils.timestamps import MS_PER_HOUR

logger = structlog.get_logger(__name__)

MS_PER_DAY = 24 * MS_PER_HOUR


def max_gap_ms(required_cleanings_per_day: Any) -> float:
    """Maximum tolerable interval between verified cleanings, in milliseconds.

    A missing, non-numeric or non-positive count is a configuration error;
    it is logged and treated as one cleaning per day.

    Example:
        >>> max_gap_ms(6)
        14400000.0
    """
    count = _to_int(required_cleanings_per_day)
    if count is None or count < 1:
        logger.warning(
            "invalid_sla_config",
            required_cleanings_per_day=required_cleanings_per_day,
            fallback=1,
        )
        count = 1
    return MS_PER_DAY / count


def max_gap_for_building(building: Any) -> float:
    """max_gap_ms for a building row, dict or client_sla_config mapping."""
    config = _get(building, "client_sla_config")
    if config is None:
        config = building
    return max_gap_ms(_get(config, "required_cleanings_per_day"))


def is_breach(gap_duration_ms: float, allowed_duration_ms: float) -> bool:
    return gap_duration_ms > allowed_duration_ms


def _get(source: Any, key: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(key)
    return getattr(source, key, None)


def _to_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
