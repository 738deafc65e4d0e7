"""Template clone sequence.

Creates a repository in the organization and copies the template's
configuration into it, one step after the other:

1. repository creation with the template's settings
2. CODEOWNERS
3. team permissions
4. branch protection rules
5. labels (replacing the defaults)
6. autolink references

The sequence is not transactional. The first failing step aborts the
sequence with a ProvisioningError; completed steps are left in place.
"""

import logging
from typing import Awaitable, Callable, Optional

from repobot.github.client import GitHubClient
from repobot.github.models import RepositoryMetadata
from repobot.provisioning.models import ProvisioningError


logger = logging.getLogger(__name__)


CODEOWNERS_PATHS = ("CODEOWNERS", ".github/CODEOWNERS", "docs/CODEOWNERS")


class TemplateCloner:
    """Creates repositories from a template's configuration.

    Attributes:
        github_client: GitHub API client for every clone step.
    """

    def __init__(self, github_client: GitHubClient):
        self.github_client = github_client

    async def clone(self, organization: str, name: str, template_name: str) -> str:
        """Create `name` in `organization` from the template.

        Args:
            organization: Organization owning both repositories.
            name: Sanitized name of the repository to create.
            template_name: Resolved name of the template repository.

        Returns:
            The URL of the created repository.

        Raises:
            ProvisioningError: If any step fails.
        """
        full_name = f"{organization}/{name}"

        template = await self._step(
            "read template", full_name,
            lambda: self._get_template(organization, template_name),
        )
        repository = await self._step(
            "create repository", full_name,
            lambda: self.github_client.create_org_repository(organization, name, template),
        )
        await self._step(
            "copy CODEOWNERS", full_name,
            lambda: self.copy_codeowners(organization, template_name, repository.name),
        )
        await self._step(
            "copy teams", full_name,
            lambda: self.copy_teams(organization, template_name, repository.name),
        )
        await self._step(
            "copy branch protections", full_name,
            lambda: self.copy_branch_protections(organization, template_name, repository),
        )
        await self._step(
            "copy labels", full_name,
            lambda: self.copy_labels(organization, template_name, repository.name),
        )
        await self._step(
            "copy autolinks", full_name,
            lambda: self.copy_autolinks(organization, template_name, repository.name),
        )

        logger.info(
            "Repository cloned from template",
            extra={"repository": full_name, "template": template_name},
        )
        return repository.html_url or f"https://github.com/{full_name}"

    async def _step(self, step: str, repository: str, action: Callable[[], Awaitable]):
        logger.info("Clone step started", extra={"step": step, "repository": repository})
        try:
            return await action()
        except Exception as exc:
            logger.error(
                "Clone step failed",
                extra={"step": step, "repository": repository, "error": str(exc)},
            )
            raise ProvisioningError(step, repository, exc) from exc

    async def _get_template(self, organization: str, template_name: str) -> RepositoryMetadata:
        template = await self.github_client.get_repository(organization, template_name)
        if template is None:
            raise LookupError(f"Template repository {organization}/{template_name} not found")
        return template

    async def copy_codeowners(self, organization: str, template_name: str, name: str) -> Optional[str]:
        """Copy the first CODEOWNERS file found to the same path.

        Returns:
            The copied path, or None if the template has no CODEOWNERS.
        """
        for path in CODEOWNERS_PATHS:
            content = await self.github_client.get_file_content(organization, template_name, path)
            if content is None:
                continue
            await self.github_client.create_or_update_file(
                organization,
                name,
                path,
                f"Copy CODEOWNERS from {template_name}",
                content.content,
            )
            return path

        logger.info(
            "Template has no CODEOWNERS file",
            extra={"template": template_name},
        )
        return None

    async def copy_teams(self, organization: str, template_name: str, name: str) -> None:
        teams = await self.github_client.list_team_permissions(organization, template_name)
        for team in teams:
            await self.github_client.set_team_permission(
                organization, team.slug, organization, name, team.permission
            )

    async def copy_branch_protections(
        self, organization: str, template_name: str, repository: RepositoryMetadata
    ) -> None:
        rules = await self.github_client.list_branch_protection_rules(organization, template_name)
        for rule in rules:
            await self.github_client.create_branch_protection_rule(repository.node_id, rule)

    async def copy_labels(self, organization: str, template_name: str, name: str) -> None:
        """Replace the repository's labels with the template's labels."""
        for label in await self.github_client.list_labels(organization, name):
            await self.github_client.delete_label(organization, name, label.name)

        for label in await self.github_client.list_labels(organization, template_name):
            await self.github_client.create_label(
                organization, name, label.name, label.color, label.description
            )

    async def copy_autolinks(self, organization: str, template_name: str, name: str) -> None:
        for autolink in await self.github_client.list_autolinks(organization, template_name):
            await self.github_client.create_autolink(
                organization,
                name,
                autolink.key_prefix,
                autolink.url_template,
                autolink.is_alphanumeric,
            )
