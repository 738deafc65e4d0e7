"""GitHub webhook handler for the repository bot.

This module provides the WebhookHandler class for verifying and parsing
GitHub webhook deliveries into IssueEvent and IssueCommentEvent objects.
Deliveries with actions the bot does not handle parse to None.

GitHub Webhook Payload Structure (issue_comment event):
{
  "action": "created",
  "issue": {
    "number": 123,
    "body": "# Repository Name ...",
    "user": {"login": "requester"}
  },
  "comment": {
    "body": "/repo-bot approve",
    "user": {"login": "approver"}
  },
  "repository": {
    "name": "repository-requests",
    "owner": {"login": "my-org"}
  }
}
"""

import hashlib
import hmac
import logging
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from repobot.webhook.models import (
    CommentAction,
    EventName,
    IssueAction,
    IssueCommentEvent,
    IssueEvent,
)

logger = logging.getLogger(__name__)


SIGNATURE_PREFIX = "sha256="

WebhookEvent = Union[IssueEvent, IssueCommentEvent]


class WebhookHandler:
    """Handler for verifying and parsing GitHub webhook events.

    Attributes:
        secret: The webhook secret. When unset, signatures are not checked
                (e.g. when running as a GitHub Action, or behind a gateway
                that validates deliveries).
    """

    def __init__(self, secret: Optional[str] = None) -> None:
        self.secret = secret

    def verify_signature(self, body: bytes, signature_header: Optional[str]) -> bool:
        """Check an X-Hub-Signature-256 header against the raw body.

        Returns:
            True if no secret is configured or the signature matches.
        """
        if not self.secret:
            return True

        if not signature_header or not signature_header.startswith(SIGNATURE_PREFIX):
            logger.warning("Missing or malformed webhook signature header")
            return False

        expected = hmac.new(
            self.secret.encode("utf-8"), body, hashlib.sha256
        ).hexdigest()
        return hmac.compare_digest(expected, signature_header[len(SIGNATURE_PREFIX):])

    def parse(self, event_name: str, payload: Any) -> Optional[WebhookEvent]:
        """Parse a delivery according to its event name.

        Returns:
            The parsed event, or None for other event names, unhandled
            actions and malformed payloads.
        """
        if event_name == EventName.ISSUES.value:
            return self.parse_issue_event(payload)
        if event_name == EventName.ISSUE_COMMENT.value:
            return self.parse_issue_comment_event(payload)

        logger.debug("Ignoring unsupported event: %s", event_name)
        return None

    def parse_issue_event(self, payload: Any) -> Optional[IssueEvent]:
        """Parse an issues event.

        Returns:
            IssueEvent for opened/edited actions, None otherwise.
        """
        if not isinstance(payload, dict):
            logger.warning("Invalid payload: expected dict, got %s", type(payload))
            return None

        action = self._parse_enum(IssueAction, payload.get("action"))
        if action is None:
            logger.debug("Ignoring issues action: %s", payload.get("action"))
            return None

        issue = self._section(payload, "issue")
        location = self._repository_location(payload)
        if issue is None or location is None:
            return None

        try:
            event = IssueEvent(
                action=action,
                owner=location[0],
                repository=location[1],
                issue_number=issue.get("number"),
                body=self._text(issue.get("body")),
                author=self._login(issue.get("user")),
            )
        except ValidationError as e:
            logger.warning("Invalid issues payload: %s", e)
            return None

        logger.info(
            "Parsed issue event: action=%s, issue=%s",
            action.value,
            event.issue_id,
        )
        return event

    def parse_issue_comment_event(self, payload: Any) -> Optional[IssueCommentEvent]:
        """Parse an issue_comment event.

        Returns:
            IssueCommentEvent for the created action, None otherwise.
        """
        if not isinstance(payload, dict):
            logger.warning("Invalid payload: expected dict, got %s", type(payload))
            return None

        action = self._parse_enum(CommentAction, payload.get("action"))
        if action is None:
            logger.debug("Ignoring issue_comment action: %s", payload.get("action"))
            return None

        issue = self._section(payload, "issue")
        comment = self._section(payload, "comment")
        location = self._repository_location(payload)
        if issue is None or comment is None or location is None:
            return None

        try:
            event = IssueCommentEvent(
                action=action,
                owner=location[0],
                repository=location[1],
                issue_number=issue.get("number"),
                issue_body=self._text(issue.get("body")),
                comment_body=self._text(comment.get("body")),
                commenter=self._login(comment.get("user")),
            )
        except ValidationError as e:
            logger.warning("Invalid issue_comment payload: %s", e)
            return None

        logger.info(
            "Parsed issue comment event: action=%s, issue=%s",
            action.value,
            event.issue_id,
        )
        return event

    def _parse_enum(self, enum_type, value: Any):
        if not isinstance(value, str):
            return None
        try:
            return enum_type(value)
        except ValueError:
            return None

    def _section(self, payload: Dict[str, Any], key: str) -> Optional[Dict[str, Any]]:
        section = payload.get(key)
        if not isinstance(section, dict):
            logger.warning(
                "Missing or invalid '%s' field in payload: %s", key, type(section)
            )
            return None
        return section

    def _repository_location(self, payload: Dict[str, Any]) -> Optional[tuple]:
        """Extract (owner, name) of the repository holding the issue."""
        repository = self._section(payload, "repository")
        if repository is None:
            return None

        name = repository.get("name")
        owner = self._login(repository.get("owner"))
        if not isinstance(name, str) or not name.strip() or not owner:
            logger.warning("Invalid repository in payload: %s", repository.get("full_name"))
            return None
        return owner, name.strip()

    def _login(self, user_data: Any) -> str:
        if not isinstance(user_data, dict):
            return ""
        login = user_data.get("login")
        return login.strip() if isinstance(login, str) else ""

    def _text(self, value: Any) -> str:
        return value if isinstance(value, str) else ""


def create_webhook_handler(secret: Optional[str] = None) -> WebhookHandler:
    """Factory function to create a WebhookHandler instance."""
    return WebhookHandler(secret=secret)
