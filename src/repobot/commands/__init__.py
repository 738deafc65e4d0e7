"""Comment commands and the comments the bot posts.

Comments starting with the command prefix (default `/repo-bot`) are
classified into the known commands (ping-admins, approve) or routed to the
unknown-command help.
"""

from repobot.commands.dispatcher import (
    BotCommand,
    CommandKind,
    ParsedCommand,
    parse_command,
)

__all__ = [
    "BotCommand",
    "CommandKind",
    "ParsedCommand",
    "parse_command",
]
