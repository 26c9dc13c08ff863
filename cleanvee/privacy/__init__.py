"""PII filtering for payloads sent to external systems."""

from cleanvee.privacy.sanitize import (
    PrivacyAudit,
    privacy_audit,
    sanitize_alert_for_ai,
    sanitize_log_for_ai,
    sanitize_logs_for_ai,
)

__all__ = [
    "PrivacyAudit",
    "privacy_audit",
    "sanitize_alert_for_ai",
    "sanitize_log_for_ai",
    "sanitize_logs_for_ai",
]
