import logging

import httpx

from cleanvee.config import NotificationsConfig, get_config
from cleanvee.db.models import AlertModel

logger = logging.getLogger(__name__)


async def send_slack_notification(
    message: str,
    blocks: list[dict] | None = None,
    config: NotificationsConfig | None = None,
) -> bool:
    """Send a notification to Slack via webhook.

    Args:
        message: The fallback text message.
        blocks: Optional list of Slack Block Kit blocks for rich formatting.
        config: Notification settings; defaults to the application config.

    Returns:
        bool: True if successful, False otherwise.
    """
    if config is None:
        config = get_config().notifications

    # Check if notifications are enabled and webhook URL is configured
    if not config.enabled:
        logger.debug("slack_notifications_disabled_by_config")
        return False

    if not config.slack_webhook_url:
        logger.warning("slack_webhook_url_missing: Notifications enabled but no webhook URL configured")
        return False

    payload = {"text": message}
    if blocks:
        payload["blocks"] = blocks

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(config.slack_webhook_url, json=payload)
            if response.status_code != 200:
                logger.error(
                    "slack_notification_failed: status=%s response=%s",
                    response.status_code,
                    response.text
                )
                return False

            logger.info("slack_notification_sent")
            return True
    except httpx.HTTPError as e:
        logger.error("slack_notification_error: %s", str(e))
        return False


def format_alert_message(alert: AlertModel) -> str:
    """One-line summary of an alert for chat notifications."""
    details = alert.details or {}
    parts = [f"[{alert.severity}] {alert.type} at checkpoint {alert.checkpoint_id}"]
    if alert.building_id:
        parts.append(f"building {alert.building_id}")
    if "score" in details:
        parts.append(f"score {details['score']}")
    hazards = details.get("detected_hazards") or []
    if hazards:
        parts.append("hazards: " + ", ".join(hazards))
    if alert.message:
        parts.append(alert.message)
    return " | ".join(parts)


def build_alert_blocks(alert: AlertModel) -> list[dict]:
    """Block Kit layout: header, key fields, optional message."""
    details = alert.details or {}
    fields = [
        {"type": "mrkdwn", "text": f"*Severity:*\n{alert.severity}"},
        {"type": "mrkdwn", "text": f"*Checkpoint:*\n{alert.checkpoint_id}"},
    ]
    if alert.building_id:
        fields.append({"type": "mrkdwn", "text": f"*Building:*\n{alert.building_id}"})
    if "score" in details:
        fields.append({"type": "mrkdwn", "text": f"*Score:*\n{details['score']}"})

    blocks: list[dict] = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": alert.type.replace("_", " ").title()},
        },
        {"type": "section", "fields": fields},
    ]
    if alert.message:
        blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": alert.message}})
    return blocks


async def notify_alert(alert: AlertModel) -> bool:
    """Default alert notifier used by the worker."""
    return await send_slack_notification(
        format_alert_message(alert), blocks=build_alert_blocks(alert)
    )
