"""Event orchestration for the repository bot.

Routes parsed webhook events to their workflow:
- issues (opened/edited): parse the request and post the summary comment
- issue_comment (created): classify the command and run it

Each event is handled to completion before the next one starts, and every
event builds its own RepositoryRequest; nothing is shared between events.
"""

import asyncio
import logging
import time
from typing import Optional

from repobot.commands.dispatcher import CommandKind, parse_command
from repobot.commands.formatting import (
    format_ping_admins,
    format_request_summary,
    format_unknown_command,
)
from repobot.config import DEFAULT_COMMAND_PREFIX, BotSettings
from repobot.github.client import GitHubClient
from repobot.metrics import BotMetrics
from repobot.provisioning.approval import ApprovalWorkflow
from repobot.provisioning.cloner import TemplateCloner
from repobot.request.parser import RequestParser
from repobot.webhook.handler import WebhookEvent
from repobot.webhook.models import IssueCommentEvent, IssueEvent

logger = logging.getLogger(__name__)


class RepoBotOrchestrator:
    """Drives issue and comment events through the bot's workflows.

    Attributes:
        github_client: GitHub API client for comments.
        parser: Request parser.
        approval: Approval workflow run by the approve command.
        org_admins: Team or user mentioned by ping-admins.
        command_prefix: The command prefix, e.g. "/repo-bot".
        metrics: Optional metrics collector.
    """

    def __init__(
        self,
        github_client: GitHubClient,
        parser: RequestParser,
        approval: ApprovalWorkflow,
        org_admins: str,
        command_prefix: str = DEFAULT_COMMAND_PREFIX,
        metrics: Optional[BotMetrics] = None,
    ):
        self.github_client = github_client
        self.parser = parser
        self.approval = approval
        self.org_admins = org_admins
        self.command_prefix = command_prefix
        self.metrics = metrics

    async def handle(self, event: WebhookEvent) -> None:
        """Handle any parsed webhook event.

        Raises:
            MalformedRequestError: If the issue body does not follow the
                request template.
        """
        if isinstance(event, IssueEvent):
            await self.handle_issue(event)
        else:
            await self.handle_issue_comment(event)

    async def handle_issue(self, event: IssueEvent) -> None:
        """Parse a filed or edited request and describe it in a comment."""
        logger.info(
            "Handling issue event",
            extra={"issue_id": event.issue_id, "action": event.action.value},
        )

        request = await self.parser.parse(event.body, event.owner, event.author)
        if self.metrics is not None:
            self.metrics.record_request(request.is_complete, request.can_approve)

        await self.github_client.create_comment(
            event.owner,
            event.repository,
            event.issue_number,
            format_request_summary(request, self.command_prefix),
        )

    async def handle_issue_comment(self, event: IssueCommentEvent) -> None:
        """Classify a comment and run its command."""
        command = parse_command(event.action.value, event.comment_body, self.command_prefix)
        if self.metrics is not None:
            self.metrics.record_command(command.kind.value)

        if command.kind == CommandKind.IGNORED:
            logger.debug("Comment is not a command", extra={"issue_id": event.issue_id})
            return

        logger.info(
            "Handling command",
            extra={
                "issue_id": event.issue_id,
                "command": command.kind.value,
                "commenter": event.commenter,
            },
        )

        if command.kind == CommandKind.PING_ADMINS:
            await self._comment(event, format_ping_admins(self.org_admins, event.commenter))
        elif command.kind == CommandKind.APPROVE:
            await self.approval.run(event)
        else:
            await self._comment(event, format_unknown_command(command.text))

    async def _comment(self, event: IssueCommentEvent, body: str) -> None:
        await self.github_client.create_comment(
            event.owner, event.repository, event.issue_number, body
        )


class EventProcessor:
    """Runs events one at a time.

    Webhook deliveries are acknowledged immediately and processed in the
    background; the lock keeps two events from overlapping.
    """

    def __init__(self, orchestrator: RepoBotOrchestrator, metrics: Optional[BotMetrics] = None):
        self.orchestrator = orchestrator
        self.metrics = metrics
        self._lock = asyncio.Lock()

    async def process(self, event_name: str, event: WebhookEvent) -> bool:
        """Process one event, logging failures instead of raising.

        Returns:
            True if the event was handled without error.
        """
        async with self._lock:
            started = time.monotonic()
            try:
                await self.orchestrator.handle(event)
            except Exception:
                logger.exception(
                    "Event processing failed",
                    extra={"event_name": event_name, "issue_id": event.issue_id},
                )
                self._record(event_name, "failure", started)
                return False

            self._record(event_name, "success", started)
            return True

    def _record(self, event_name: str, result: str, started: float) -> None:
        if self.metrics is not None:
            self.metrics.record_event(event_name, result, time.monotonic() - started)


def build_orchestrator(
    settings: BotSettings,
    github_client: GitHubClient,
    metrics: Optional[BotMetrics] = None,
) -> RepoBotOrchestrator:
    """Wire all bot dependencies into a RepoBotOrchestrator.

    Args:
        settings: Validated bot settings.
        github_client: Authenticated GitHub API client.
        metrics: Optional metrics collector.

    Returns:
        Fully wired RepoBotOrchestrator.
    """
    parser = RequestParser(github_client=github_client)
    approval = ApprovalWorkflow(
        github_client=github_client,
        parser=parser,
        cloner=TemplateCloner(github_client=github_client),
        command_prefix=settings.command_prefix,
        metrics=metrics,
    )
    return RepoBotOrchestrator(
        github_client=github_client,
        parser=parser,
        approval=approval,
        org_admins=settings.org_admins,
        command_prefix=settings.command_prefix,
        metrics=metrics,
    )
