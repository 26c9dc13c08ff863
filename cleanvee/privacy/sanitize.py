"""Strip cleaner identity before payloads leave the system.

Anything handed to an external summarizer or ticketing system goes through
these functions first. Inputs are plain dicts (model_dump() output or rows
serialized for an API); they are never mutated.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from cleanvee.utils.timestamps import utcnow

# Dotted paths; a trailing segment removes that key from the nested mapping
LOG_PII_FIELDS = (
    "cleaner_id",
    "proof_of_presence.nfc_payload_hash",
    "proof_of_presence.geo_location",
    "proof_of_quality.photo_storage_path",
)

ALERT_PII_FIELDS = (
    "cleaner_id",
    "details.cleaner_id",
)


@dataclass
class PrivacyAudit:
    purpose: str
    fields_removed: list[str] = field(default_factory=list)
    sanitized_at: datetime = field(default_factory=utcnow)


def sanitize_log_for_ai(log: Mapping[str, Any]) -> dict[str, Any]:
    return _strip(log, LOG_PII_FIELDS)


def sanitize_logs_for_ai(logs: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    return [sanitize_log_for_ai(log) for log in logs]


def sanitize_alert_for_ai(alert: Mapping[str, Any]) -> dict[str, Any]:
    return _strip(alert, ALERT_PII_FIELDS)


def privacy_audit(
    original: Mapping[str, Any], sanitized: Mapping[str, Any], purpose: str
) -> PrivacyAudit:
    """List the dotted paths present in original but missing from sanitized."""
    removed = sorted(_paths(original) - _paths(sanitized))
    return PrivacyAudit(purpose=purpose, fields_removed=removed)


def _strip(source: Mapping[str, Any], paths: Iterable[str]) -> dict[str, Any]:
    result = copy.deepcopy(dict(source))
    for path in paths:
        *parents, leaf = path.split(".")
        target: Any = result
        for key in parents:
            target = target.get(key) if isinstance(target, dict) else None
            if target is None:
                break
        if isinstance(target, dict):
            target.pop(leaf, None)
    return result


def _paths(data: Mapping[str, Any], prefix: str = "") -> set[str]:
    paths: set[str] = set()
    for key, value in data.items():
        path = f"{prefix}{key}"
        paths.add(path)
        if isinstance(value, Mapping):
            paths |= _paths(value, f"{path}.")
    return paths
