"""Approval workflow for repository requests.

Runs when someone comments the approve command on a request issue. The
request is parsed again from the issue body with the commenter as the
requester, so permissions and template existence are checked as of now and
not as of the time the issue was filed.

Branches, each terminal:
1. commenter may not approve: permission denied comment
2. request incomplete: summary of what is still wrong
3. otherwise: acknowledge, run the template clone sequence, report the
   outcome, and on success close and lock the issue
"""

import logging
from typing import Optional

from repobot.commands.formatting import (
    format_creation_failed,
    format_creation_started,
    format_creation_succeeded,
    format_incomplete_request,
    format_permission_denied,
)
from repobot.config import DEFAULT_COMMAND_PREFIX
from repobot.github.client import GitHubClient
from repobot.metrics import BotMetrics
from repobot.provisioning.cloner import TemplateCloner
from repobot.provisioning.models import ProvisioningError, ProvisioningOutcome
from repobot.request.parser import RequestParser
from repobot.webhook.models import IssueCommentEvent


logger = logging.getLogger(__name__)


LOCK_REASON = "resolved"


class ApprovalWorkflow:
    """Re-validates a request and provisions the repository.

    Attributes:
        github_client: GitHub API client for comments and issue state.
        parser: Parser used to rebuild the request.
        cloner: Template clone sequence.
        command_prefix: Prefix quoted in remediation hints.
        metrics: Optional metrics collector.
    """

    def __init__(
        self,
        github_client: GitHubClient,
        parser: RequestParser,
        cloner: TemplateCloner,
        command_prefix: str = DEFAULT_COMMAND_PREFIX,
        metrics: Optional[BotMetrics] = None,
    ):
        self.github_client = github_client
        self.parser = parser
        self.cloner = cloner
        self.command_prefix = command_prefix
        self.metrics = metrics

    async def run(self, event: IssueCommentEvent) -> Optional[ProvisioningOutcome]:
        """Run the approval for a comment event.

        Returns:
            The provisioning outcome, or None when the workflow stopped
            before provisioning.

        Raises:
            MalformedRequestError: If the issue body no longer follows the
                request template.
        """
        logger.info(
            "Starting approval, checking permissions and repository settings again",
            extra={"issue_id": event.issue_id, "approver": event.commenter},
        )

        request = await self.parser.parse(event.issue_body, event.owner, event.commenter)

        if not request.can_approve:
            logger.info(
                "Approval denied",
                extra={"issue_id": event.issue_id, "approver": event.commenter},
            )
            self._count("denied")
            await self._comment(event, format_permission_denied(request, self.command_prefix))
            return None

        if not request.sanitized_name or not request.resolved_template_name:
            self._count("incomplete")
            await self._comment(event, format_incomplete_request(request, self.command_prefix))
            return None

        await self._comment(event, format_creation_started())

        try:
            repository_url = await self.cloner.clone(
                event.owner, request.sanitized_name, request.resolved_template_name
            )
        except Exception as exc:
            step = exc.step if isinstance(exc, ProvisioningError) else None
            logger.error(
                "Repository creation failed",
                extra={"issue_id": event.issue_id, "step": step, "error": str(exc)},
            )
            outcome = ProvisioningOutcome.failure(exc)
            self._count("failed")
            await self._comment(event, format_creation_failed(outcome.error))
            return outcome

        outcome = ProvisioningOutcome.success(repository_url)
        self._count("succeeded")
        await self._comment(event, format_creation_succeeded(repository_url))
        await self.github_client.close_issue(event.owner, event.repository, event.issue_number)
        await self.github_client.lock_issue(
            event.owner, event.repository, event.issue_number, LOCK_REASON
        )
        return outcome

    async def _comment(self, event: IssueCommentEvent, body: str) -> None:
        await self.github_client.create_comment(
            event.owner, event.repository, event.issue_number, body
        )

    def _count(self, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.record_approval(outcome)
