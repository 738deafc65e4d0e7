"""Classification of `/repo-bot` comment commands.

Comments are classified into one of four kinds: ignored, ping-admins,
approve or unknown. The known commands form a closed enum; the help text
posted for unknown commands is generated from the same enum.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel

from repobot.config import DEFAULT_COMMAND_PREFIX


CREATED_ACTION = "created"


class BotCommand(str, Enum):
    """Commands understood after the command prefix.

    Attributes:
        PING_ADMINS: Mention the organization administrators on the issue.
        APPROVE: Approve the request and start the repository creation.
    """

    PING_ADMINS = "ping-admins"
    APPROVE = "approve"

    @property
    def help_text(self) -> str:
        return COMMAND_HELP[self]


COMMAND_HELP = {
    BotCommand.PING_ADMINS: (
        "will create a comment in this issue which will ping the "
        "organization admins"
    ),
    BotCommand.APPROVE: (
        "approve the request and initiate the repository creation (will fail "
        "if user commenting is not allowed to approve)"
    ),
}


class CommandKind(str, Enum):
    """How a comment is routed."""

    IGNORED = "ignored"
    PING_ADMINS = "ping_admins"
    APPROVE = "approve"
    UNKNOWN = "unknown"


_KIND_BY_COMMAND = {
    BotCommand.PING_ADMINS: CommandKind.PING_ADMINS,
    BotCommand.APPROVE: CommandKind.APPROVE,
}


class ParsedCommand(BaseModel):
    """A classified comment.

    Attributes:
        kind: The routing decision.
        command: The known command, for PING_ADMINS and APPROVE.
        text: The lower-cased text following the prefix, if any.
    """

    kind: CommandKind
    command: Optional[BotCommand] = None
    text: str = ""


def parse_command(
    action: str, body: Optional[str], prefix: str = DEFAULT_COMMAND_PREFIX
) -> ParsedCommand:
    """Classify a comment event.

    Args:
        action: The issue_comment event action.
        body: The comment body.
        prefix: The command prefix, e.g. "/repo-bot".

    Returns:
        The classified command. Comments that were not just created or that
        do not start with the prefix are IGNORED.
    """
    if action != CREATED_ACTION or not body:
        return ParsedCommand(kind=CommandKind.IGNORED)

    text = body.strip()
    if not text.lower().startswith(prefix.lower()):
        return ParsedCommand(kind=CommandKind.IGNORED)

    remainder = text[len(prefix):]
    if remainder and not remainder[0].isspace():
        # "/repo-botx" is a different word, not this bot's prefix
        return ParsedCommand(kind=CommandKind.IGNORED)

    command_text = remainder.strip().lower()
    try:
        command = BotCommand(command_text)
    except ValueError:
        return ParsedCommand(kind=CommandKind.UNKNOWN, text=command_text)

    return ParsedCommand(
        kind=_KIND_BY_COMMAND[command], command=command, text=command_text
    )
