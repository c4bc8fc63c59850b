"""
Notifications: Slack webhook integration for batch scoring runs.

Notification failure never blocks scoring.
"""
import logging
import requests

from lead_engine.config import SLACK_WEBHOOK_URL
from lead_engine.services.circuit_breaker import CircuitOpenError, get_breaker

logger = logging.getLogger('services.notifications')


def _post(blocks):
    cb = get_breaker('slack')
    response = cb.call(requests.post, SLACK_WEBHOOK_URL, json={"blocks": blocks}, timeout=10)
    response.raise_for_status()


def notify_batch_complete(summary):
    """Post a batch scoring summary to Slack."""
    if not SLACK_WEBHOOK_URL:
        return

    headline = "Lead Scoring Batch Completed" if not summary.failed else "Lead Scoring Batch Completed With Failures"
    blocks = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": headline},
        },
        {
            "type": "section",
            "fields": [
                {"type": "mrkdwn", "text": f"*Processed:* {summary.processed}"},
                {"type": "mrkdwn", "text": f"*Scored:* {summary.succeeded}"},
                {"type": "mrkdwn", "text": f"*Skipped:* {summary.skipped}"},
                {"type": "mrkdwn", "text": f"*Failed:* {summary.failed}"},
            ]
        },
    ]

    if summary.errors:
        lines = '\n'.join(f"{e['lead_id'][:8]}: {e['error']}" for e in summary.errors[:5])
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"*Errors:* ```{lines[:500]}```"}
        })

    if summary.duration_seconds:
        blocks.append({
            "type": "context",
            "elements": [{"type": "mrkdwn", "text": f"Took {summary.duration_seconds:.0f}s"}]
        })

    try:
        _post(blocks)
        logger.info("Batch completion notification sent (%d processed)", summary.processed)
    except (requests.RequestException, CircuitOpenError):
        logger.error("Failed to send batch completion notification", exc_info=True)
