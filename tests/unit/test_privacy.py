"""Unit tests for PII sanitizers."""

from __future__ import annotations

from cleanvee.privacy import (
    privacy_audit,
    sanitize_alert_for_ai,
    sanitize_log_for_ai,
    sanitize_logs_for_ai,
)


def _log_payload() -> dict:
    return {
        "id": "log-1",
        "cleaner_id": "cleaner-42",
        "checkpoint_id": "cp-1",
        "proof_of_presence": {
            "nfc_tap_timestamp": "2024-05-01T08:00:00Z",
            "nfc_payload_hash": "abc123",
            "geo_location": {"latitude": 53.3, "longitude": -6.2},
        },
        "proof_of_quality": {
            "photo_storage_path": "gs://bucket/cleaner-42/photo.jpg",
            "overall_score": 85,
        },
    }


class TestSanitizeLog:
    def test_strips_cleaner_identity(self):
        sanitized = sanitize_log_for_ai(_log_payload())

        assert "cleaner_id" not in sanitized
        assert sanitized["proof_of_presence"] == {"nfc_tap_timestamp": "2024-05-01T08:00:00Z"}
        assert sanitized["proof_of_quality"] == {"overall_score": 85}
        assert sanitized["checkpoint_id"] == "cp-1"

    def test_does_not_mutate_input(self):
        payload = _log_payload()
        sanitize_log_for_ai(payload)
        assert payload["cleaner_id"] == "cleaner-42"
        assert "geo_location" in payload["proof_of_presence"]

    def test_missing_sections_are_fine(self):
        assert sanitize_log_for_ai({"id": "log-2", "proof_of_quality": None}) == {
            "id": "log-2",
            "proof_of_quality": None,
        }

    def test_batch(self):
        sanitized = sanitize_logs_for_ai([_log_payload(), _log_payload()])
        assert len(sanitized) == 2
        assert all("cleaner_id" not in log for log in sanitized)


class TestSanitizeAlert:
    def test_strips_cleaner_from_details(self):
        alert = {
            "type": "SUPERVISOR_AUDIT_REQUEST",
            "details": {"cleaner_id": "cleaner-42", "streak": 10},
        }
        assert sanitize_alert_for_ai(alert)["details"] == {"streak": 10}


class TestPrivacyAudit:
    def test_lists_removed_paths(self):
        original = _log_payload()
        audit = privacy_audit(original, sanitize_log_for_ai(original), purpose="ai_summary")

        assert audit.purpose == "ai_summary"
        assert "cleaner_id" in audit.fields_removed
        assert "proof_of_presence.geo_location" in audit.fields_removed
        assert "proof_of_presence.geo_location.latitude" in audit.fields_removed
        assert "checkpoint_id" not in audit.fields_removed
