"""Alert lifecycle (create, deduplicate, resolve)."""

from cleanvee.alerts.service import AlertService

__all__ = ["AlertService"]
