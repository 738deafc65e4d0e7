"""Issue body parsing into repository requests.

The request issue template has two sections the bot understands:

    # Repository Name
    payments-api

    # Template Repository
    payments-template

The body is tokenized into top-level markdown blocks with markdown-it-py and
walked once from the front. HTML comments (template instructions hidden from
readers) are skipped, other headings and their content are ignored.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from markdown_it import MarkdownIt

from repobot.github.client import GitHubClient
from repobot.request.authorization import RESOLUTION_ERRORS, AuthorizationResolver
from repobot.request.models import MalformedRequestError, RepositoryRequest
from repobot.request.naming import common_prefix, sanitize_repository_name


logger = logging.getLogger(__name__)


REPOSITORY_NAME_HEADING = "repository name"
TEMPLATE_REPOSITORY_HEADING = "template repository"

HEADING = "heading"
PARAGRAPH = "paragraph"
HTML_BLOCK = "html_block"


@dataclass(frozen=True)
class Block:
    """A top-level markdown block.

    Attributes:
        kind: "heading", "paragraph", "html_block", or the markdown-it token
            type for any other block (e.g. "bullet_list", "fence", "hr").
        text: Inline text of headings and paragraphs, raw content otherwise.
    """

    kind: str
    text: str = ""


_markdown = MarkdownIt("commonmark")


def tokenize_blocks(body: str) -> List[Block]:
    """Split markdown into its top-level blocks, in document order."""
    tokens = _markdown.parse(body or "")
    blocks: List[Block] = []

    for index, token in enumerate(tokens):
        if token.level != 0 or token.nesting == -1:
            continue

        if token.nesting == 1:
            kind = token.type[: -len("_open")]
            text = ""
            if kind in (HEADING, PARAGRAPH) and index + 1 < len(tokens):
                text = tokens[index + 1].content
            blocks.append(Block(kind=kind, text=text))
        else:
            blocks.append(Block(kind=token.type, text=token.content))

    return blocks


def is_html_comment(block: Block) -> bool:
    return block.kind == HTML_BLOCK and block.text.lstrip().startswith("<!--")


def _next_block(blocks: List[Block]) -> Optional[Block]:
    """Pop the next block that is not an HTML comment."""
    while blocks:
        block = blocks.pop(0)
        if is_html_comment(block):
            continue
        return block
    return None


def _expect_paragraph(blocks: List[Block], heading: str) -> str:
    block = _next_block(blocks)
    if block is None or block.kind != PARAGRAPH:
        raise MalformedRequestError(heading)
    return block.text.strip()


class RequestParser:
    """Builds RepositoryRequest objects from issue bodies.

    Attributes:
        github_client: GitHub API client used to resolve the template.
        authorization: Resolver for the approval decision.
    """

    def __init__(
        self,
        github_client: GitHubClient,
        authorization: Optional[AuthorizationResolver] = None,
    ):
        self.github_client = github_client
        self.authorization = authorization or AuthorizationResolver(github_client)

    async def parse(
        self, body: str, organization: str, requester: str
    ) -> RepositoryRequest:
        """Parse an issue body and resolve it against the organization.

        Args:
            body: The issue body markdown.
            organization: Organization owning the template and the new
                repository.
            requester: Login of the user whose permissions are checked.

        Returns:
            The resolved request.

        Raises:
            MalformedRequestError: If a recognized heading is not followed by
                a paragraph.
        """
        blocks = tokenize_blocks(body)

        parsed_name: Optional[str] = None
        sanitized_name: Optional[str] = None
        template_name: Optional[str] = None
        resolved_template_name: Optional[str] = None
        is_template_admin = False

        while blocks:
            block = _next_block(blocks)
            if block is None or block.kind != HEADING:
                continue

            heading = block.text.strip().lower()
            if heading == REPOSITORY_NAME_HEADING:
                parsed_name = _expect_paragraph(blocks, heading)
                sanitized_name = sanitize_repository_name(parsed_name)
            elif heading == TEMPLATE_REPOSITORY_HEADING:
                template_name = _expect_paragraph(blocks, heading)
                resolved_template_name = await self._resolve_template(
                    organization, template_name
                )
                is_template_admin = False
                if resolved_template_name is not None:
                    admin_check = await self.authorization.check_template_admin(
                        organization, resolved_template_name, requester
                    )
                    is_template_admin = admin_check.is_admin

        prefix: Optional[str] = None
        can_approve = False
        if sanitized_name and resolved_template_name:
            prefix = common_prefix(sanitized_name, resolved_template_name)
            can_approve = await self.authorization.can_approve(
                organization, requester, is_template_admin, prefix
            )

        request = RepositoryRequest(
            parsed_name=parsed_name,
            sanitized_name=sanitized_name,
            template_name=template_name,
            resolved_template_name=resolved_template_name,
            is_requester_template_admin=is_template_admin,
            common_prefix=prefix,
            can_approve=can_approve,
        )

        logger.info(
            "Parsed repository request",
            extra={"organization": organization, "requester": requester, **request.to_log_dict()},
        )
        return request

    async def _resolve_template(
        self, organization: str, template_name: str
    ) -> Optional[str]:
        """Look up the template, returning its canonical name or None."""
        try:
            repository = await self.github_client.get_repository(
                organization, sanitize_repository_name(template_name)
            )
        except RESOLUTION_ERRORS as exc:
            logger.warning(
                "Template lookup failed",
                extra={
                    "organization": organization,
                    "template": template_name,
                    "error": str(exc),
                },
            )
            return None

        if repository is None:
            logger.info(
                "Template repository not found",
                extra={"organization": organization, "template": template_name},
            )
            return None
        return repository.name
