"""Comment formatting for request issues.

Every comment the bot posts starts with the "[repo-bot]" marker so the bot's
own comments are easy to tell apart from human ones.
"""

from repobot.commands.dispatcher import BotCommand
from repobot.request.models import RepositoryRequest


COMMENT_MARKER = "[repo-bot]"


def _remediation(prefix: str) -> str:
    return (
        "You can either correct the issue by editing your original request or "
        f"comment `{prefix} {BotCommand.PING_ADMINS.value}` on this issue to ping "
        "the organization administrators for assistance."
    )


def _show(value: object) -> str:
    return f"'{value}'" if value is not None else "'undefined'"


def format_request_summary(request: RepositoryRequest, prefix: str) -> str:
    """Describe what was understood from a request and what happens next.

    The summary lists every parsed and resolved field, followed by the first
    problem found or, when there is none, the next step for the requester.
    """
    base = (
        f"{COMMENT_MARKER} This is the information I understood:\n"
        "```\n"
        f"Parsed Repository Name: {_show(request.parsed_name)}\n"
        f"Sanitized Repository Name: {_show(request.sanitized_name)}\n"
        f"Parsed Template Repository: {_show(request.template_name)}\n"
        f"Resolved Template Repository: {_show(request.resolved_template_name)}\n"
        f"Issue Author is Template Admin: {_show(request.is_requester_template_admin)}\n"
        f"Common Prefix: {_show(request.common_prefix)}\n"
        f"Issue Author can approve: {_show(request.can_approve)}\n"
        "```\n"
    )

    if not request.parsed_name:
        return (
            f"{base}\n⚠️ I could not understand this request: The repository name "
            "seems missing. Did you properly follow the template?\n"
            f"{_remediation(prefix)}"
        )

    if not request.template_name:
        return (
            f"{base}\n⚠️ I could not understand this request: The template "
            "repository name seems missing. Did you properly follow the template?\n"
            f"{_remediation(prefix)}"
        )

    if not request.resolved_template_name:
        return (
            f"{base}\n⚠️ I could not find any repository with the name "
            f"`{request.template_name}`. Did you mention an existing repository "
            "in this organization?\n"
            f"{_remediation(prefix)}"
        )

    approve = f"`{prefix} {BotCommand.APPROVE.value}`"
    ping = f"`{prefix} {BotCommand.PING_ADMINS.value}`"

    if not request.can_approve:
        return (
            f"{base}\n✅ The information about the repository looks good. But as "
            "you are not an admin of the template repository, either a repository "
            "or organization admin needs to approve your request.\n"
            f"You can either ask any repository or organization admin to approve "
            f"your request by commenting {approve} or comment {ping} to ping the "
            "organization administrators."
        )

    return (
        f"{base}\n✅ The information about the repository looks good. You are "
        "only one step away from the repository being created.\n"
        f"Comment {approve} on this issue to initiate the repository creation."
    )


def format_ping_admins(org_admins: str, commenter: str) -> str:
    return (
        f"{COMMENT_MARKER} Hey @{org_admins} 👋! It seems @{commenter} is either "
        "facing troubles or needs your approval for this request."
    )


def format_unknown_command(command_text: str) -> str:
    """List the known commands after an unrecognized one."""
    lines = [
        f"{COMMENT_MARKER} I did not understand the command `{command_text}`, it "
        "is not a known command. Known commands are:"
    ]
    for command in BotCommand:
        lines.append(f"* `{command.value}` - {command.help_text}")
    return "\n".join(lines)


def format_permission_denied(request: RepositoryRequest, prefix: str) -> str:
    return (
        f"{COMMENT_MARKER} Sorry but it seems you do not have the required "
        "permissions to approve the repository creation 😞.\n"
        "Please reach out to one of the administrators of "
        f"`{request.resolved_template_name}` to approve this request, or use "
        f"`{prefix} {BotCommand.PING_ADMINS.value}` to ping the organization "
        "admins for approval. You might want to reach out to them separately as "
        "well, depending on how urgent this repository creation is."
    )


def format_incomplete_request(request: RepositoryRequest, prefix: str) -> str:
    return (
        f"{COMMENT_MARKER} Sorry, but it seems there are still some issues with "
        "your request. These issues need to be resolved before the repository "
        "can be created.\n\n" + format_request_summary(request, prefix)
    )


def format_creation_started() -> str:
    return (
        f"{COMMENT_MARKER} Great, some work to do 💪! I will start the creation "
        "of your repository now, this might take a while until it is completed. "
        "I will close this issue once the repository was created."
    )


def format_creation_succeeded(repository_url: str) -> str:
    return (
        f"{COMMENT_MARKER} 🥳🎉 The repository creation completed without errors. "
        f"You can now access the repository at {repository_url}. Happy coding. "
        "I will close this issue now."
    )


def format_creation_failed(error: str) -> str:
    """Report a failed creation. Created resources are not rolled back."""
    return (
        f"{COMMENT_MARKER} Aw, snap! Something went wrong during creation of the "
        "repository 😱. I recommend reaching out to the organization "
        "administrators to resolve this issue!\n"
        "The repository might have been partially created, better let the admins "
        "double check. Sorry for the circumstances!\n"
        "The error was:\n"
        "```\n"
        f"{error}\n"
        "```"
    )
