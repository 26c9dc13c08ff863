"""Outbound notifications (Slack)."""

from cleanvee.notifications.slack import (
    build_alert_blocks,
    format_alert_message,
    notify_alert,
    send_slack_notification,
)

__all__ = ["build_alert_blocks", "format_alert_message", "notify_alert", "send_slack_notification"]
