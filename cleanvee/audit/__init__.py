"""Cleaner streak tracking and supervisor audit requests."""

from cleanvee.audit.streak import CleanerAuditTrigger, StreakUpdate

__all__ = ["CleanerAuditTrigger", "StreakUpdate"]
