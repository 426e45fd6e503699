"""
funnel.notify
=============

Slack notifications for pipeline updates.

Messages go to a Slack *incoming webhook*.  Delivery is best effort:
:func:`send_slack_notification` reports success as a bool and logs
transport errors instead of raising them.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

import requests

from funnel.errors import PersistenceError
from funnel.models import ActivityEntry, Stage, StageChangeRequest
from funnel.settings import settings

logger = logging.getLogger(__name__)

STAGE_EMOJI: Dict[Stage, str] = {
    Stage.LEAD: ":seedling:",
    Stage.AUDIT_SCHEDULED: ":calendar:",
    Stage.AUDIT_DONE: ":white_check_mark:",
    Stage.PROTOTYPE_BUILDING: ":hammer_and_wrench:",
    Stage.PROTOTYPE_DELIVERED: ":package:",
    Stage.PROPOSAL_DRAFT: ":memo:",
    Stage.PROPOSAL_SENT: ":outbox_tray:",
    Stage.NEGOTIATION: ":handshake:",
    Stage.WON: ":trophy:",
    Stage.LOST: ":x:",
    Stage.ON_HOLD: ":pause_button:",
}
DEFAULT_EMOJI = ":arrow_right:"


def _emoji(stage: str) -> str:
    try:
        return STAGE_EMOJI[Stage(stage)]
    except ValueError:
        return DEFAULT_EMOJI


def format_stage_changed_message(
    client_name: str,
    from_stage: str,
    to_stage: str,
    reason: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the Slack payload announcing a stage change.

    Unknown stage names fall back to ``:arrow_right:``.
    """
    from_stage, to_stage = str(from_stage), str(to_stage)
    body = (
        f"*Pipeline Update*\n\n:office: *{client_name}*\n"
        f"{_emoji(from_stage)} {from_stage} → {_emoji(to_stage)} {to_stage}"
    )
    if reason:
        body += f"\n:speech_balloon: _{reason}_"
    return {
        "text": f"{client_name} moved to {to_stage}",
        "blocks": [
            {"type": "section", "text": {"type": "mrkdwn", "text": body}},
        ],
    }


def send_slack_notification(webhook_url: str, message: Dict[str, Any],
                            timeout: float = settings.slack_timeout) -> bool:
    """POST *message* to *webhook_url*; ``True`` on a 2xx response."""
    try:
        response = requests.post(webhook_url, json=message, timeout=timeout)
    except requests.RequestException as e:
        logger.error(f"Slack notification error: {e}")
        return False
    if not response.ok:
        logger.warning(f"Slack webhook returned HTTP {response.status_code}")
    return response.ok


def _call_now(func, *args, **kwargs):
    return func(*args, **kwargs)


class SlackStageNotifier:
    """
    Notifier hook for :class:`funnel.lifecycle.StageTransitionPolicy`.

    Looks up the client's company name through *clients* so the message
    reads naturally; falls back to the raw id.

    The message is built when the hook fires.  Delivery goes through
    *schedule*, called as ``schedule(send_slack_notification, url, message,
    timeout=...)``; the default posts immediately, the API passes
    ``BackgroundTasks.add_task`` so the post happens after the response.
    """

    def __init__(self, webhook_url: Optional[str], clients=None,
                 timeout: float = settings.slack_timeout,
                 schedule: Optional[Callable[..., Any]] = None) -> None:
        self.webhook_url = str(webhook_url) if webhook_url else None
        self.clients = clients
        self.timeout = timeout
        self.schedule = schedule or _call_now
        if not self.webhook_url:
            logger.info("Slack webhook not configured; stage notifications disabled")

    @property
    def enabled(self) -> bool:
        return self.webhook_url is not None

    def _client_name(self, client_id: str) -> str:
        if self.clients is None:
            return client_id
        try:
            return self.clients.get(client_id).company_name
        except PersistenceError:
            return client_id

    def __call__(self, request: StageChangeRequest, entry: ActivityEntry) -> None:
        if not self.enabled:
            return
        message = format_stage_changed_message(
            self._client_name(request.client_id),
            request.from_stage.value,
            request.to_stage.value,
            reason=entry.reason,
        )
        self.schedule(send_slack_notification, self.webhook_url, message, timeout=self.timeout)
