"""GitHub webhook handling for the repository bot.

This module verifies and parses GitHub webhook events, specifically:
- issues.opened - A repository request was filed
- issues.edited - A repository request was changed
- issue_comment.created - A comment, possibly a `/repo-bot` command
"""

from .handler import WebhookEvent, WebhookHandler, create_webhook_handler
from .models import (
    CommentAction,
    EventName,
    IssueAction,
    IssueCommentEvent,
    IssueEvent,
)

__all__ = [
    "CommentAction",
    "EventName",
    "IssueAction",
    "IssueCommentEvent",
    "IssueEvent",
    "WebhookEvent",
    "WebhookHandler",
    "create_webhook_handler",
]
