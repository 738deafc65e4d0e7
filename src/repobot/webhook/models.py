"""GitHub webhook event models for the repository bot.

This module defines the data models for the two GitHub webhook events the
bot reacts to:
- issues (opened, edited): a request was filed or changed
- issue_comment (created): someone commented, possibly with a command

The models use Pydantic for validation, consistent with the bot's
configuration approach in config.py.
"""

from enum import Enum

from pydantic import BaseModel, Field


class EventName(str, Enum):
    """Values of the X-GitHub-Event header handled by the bot."""

    ISSUES = "issues"
    ISSUE_COMMENT = "issue_comment"


class IssueAction(str, Enum):
    """GitHub issue event actions that trigger request parsing.

    Attributes:
        OPENED: A new request issue was created.
        EDITED: The request issue body was modified.
    """

    OPENED = "opened"
    EDITED = "edited"


class CommentAction(str, Enum):
    """GitHub issue comment actions that may carry a command."""

    CREATED = "created"


class _IssueEventBase(BaseModel):
    owner: str = Field(
        ...,
        min_length=1,
        description="The repository owner, which is also the organization "
        "the requested repository is created in",
    )

    repository: str = Field(
        ...,
        min_length=1,
        description="The name of the repository holding the request issue",
    )

    issue_number: int = Field(
        ...,
        gt=0,
        description="The request issue number (positive integer)",
    )

    @property
    def issue_id(self) -> str:
        """Canonical issue identifier "{owner}/{repository}#{issue_number}"."""
        return f"{self.owner}/{self.repository}#{self.issue_number}"


class IssueEvent(_IssueEventBase):
    """Parsed GitHub issues webhook event.

    Attributes:
        action: The issue action (opened or edited).
        body: The issue body, empty if the issue has none.
        author: Login of the user who filed the issue.
    """

    action: IssueAction
    body: str = ""
    author: str = Field(..., min_length=1)


class IssueCommentEvent(_IssueEventBase):
    """Parsed GitHub issue_comment webhook event.

    Attributes:
        action: The comment action (created).
        issue_body: Body of the issue the comment belongs to.
        comment_body: Body of the comment.
        commenter: Login of the user who wrote the comment.
    """

    action: CommentAction
    issue_body: str = ""
    comment_body: str = ""
    commenter: str = Field(..., min_length=1)
