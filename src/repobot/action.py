"""One-shot runner for GitHub Actions.

Handles the single event that triggered the workflow run. GitHub Actions
exposes the event name in GITHUB_EVENT_NAME and the webhook payload as a JSON
file at GITHUB_EVENT_PATH; the action inputs arrive as INPUT_TOKEN,
INPUT_ORG_ADMINS and INPUT_API_URL (see config.py).

The process exits with status 1 when handling the event fails, which marks
the workflow run as failed.
"""

import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict

from pydantic import ValidationError

from repobot.config import BotSettings, get_settings
from repobot.github.client import GitHubClient
from repobot.logging_setup import configure_logging
from repobot.orchestrator import build_orchestrator
from repobot.webhook.handler import WebhookHandler

logger = logging.getLogger(__name__)


class ActionError(Exception):
    """Raised when the Actions environment does not describe an event."""


def load_event(environ: Dict[str, str]) -> tuple:
    """Read the event name and payload from the Actions environment.

    Returns:
        Tuple of (event_name, payload).

    Raises:
        ActionError: If the variables are missing or the payload unreadable.
    """
    event_name = environ.get("GITHUB_EVENT_NAME")
    event_path = environ.get("GITHUB_EVENT_PATH")
    if not event_name or not event_path:
        raise ActionError("GITHUB_EVENT_NAME and GITHUB_EVENT_PATH must be set")

    try:
        payload: Any = json.loads(Path(event_path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ActionError(f"Could not read event payload {event_path}: {exc}") from exc

    return event_name, payload


async def run(settings: BotSettings, event_name: str, payload: Any) -> None:
    """Handle one event with a fresh client.

    Raises:
        MalformedRequestError: If the issue does not follow the template.
        GitHubAPIError: If a GitHub call outside the recovered paths fails.
    """
    event = WebhookHandler().parse(event_name, payload)
    if event is None:
        logger.info("Nothing to do for event", extra={"event_name": event_name})
        return

    async with GitHubClient(
        token=settings.github_token, base_url=settings.github_base_url
    ) as client:
        orchestrator = build_orchestrator(settings, client)
        await orchestrator.handle(event)


def main() -> int:
    """Console entry point. Returns the process exit status."""
    try:
        settings = get_settings()
    except ValidationError as exc:
        configure_logging()
        logger.error("Invalid configuration", extra={"error": str(exc)})
        return 1

    configure_logging(settings.log_level, settings.log_json)

    try:
        event_name, payload = load_event(dict(os.environ))
        asyncio.run(run(settings, event_name, payload))
    except Exception as exc:
        logger.exception("Handling the event failed", extra={"error": str(exc)})
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
