"""Authorization of repository creation requests.

A requester may approve the creation of a repository when either:
- they administer the template and named the new repository with the
  template's own prefix, or
- the organization lets them create repositories themselves.

Both signals come from GitHub queries that can fail. A failed query never
raises out of this module; it yields the least privileged answer instead.
Each query has its own result type so the fallback is visible at the call
site.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from repobot.github.client import GitHubAPIError, GitHubClient


logger = logging.getLogger(__name__)


ADMIN_PERMISSION = "admin"
ADMIN_ROLE = "admin"

# Failed queries, including 200 responses whose JSON has an unexpected shape
RESOLUTION_ERRORS = (GitHubAPIError, AttributeError, KeyError, TypeError, ValueError)


@dataclass(frozen=True)
class TemplateAdminCheck:
    """Outcome of asking whether the requester administers the template.

    Attributes:
        is_admin: Whether the requester holds admin permission.
        failed: True when the query failed and is_admin is the default.
        error: Error text of the failed query.
    """

    is_admin: bool
    failed: bool = False
    error: Optional[str] = None

    @classmethod
    def denied_after_failure(cls, error: Exception) -> "TemplateAdminCheck":
        return cls(is_admin=False, failed=True, error=str(error))


@dataclass(frozen=True)
class OrgRepositoryCreationCheck:
    """Outcome of asking whether the requester may create org repositories.

    Attributes:
        can_create: Whether the membership grants repository creation.
        failed: True when the query failed and can_create is the default.
        error: Error text of the failed query.
    """

    can_create: bool
    failed: bool = False
    error: Optional[str] = None

    @classmethod
    def denied_after_failure(cls, error: Exception) -> "OrgRepositoryCreationCheck":
        return cls(can_create=False, failed=True, error=str(error))


class AuthorizationResolver:
    """Answers the authorization questions of a repository request.

    Attributes:
        github_client: GitHub API client used for the permission queries.
    """

    def __init__(self, github_client: GitHubClient):
        self.github_client = github_client

    async def check_template_admin(
        self, organization: str, template: str, username: str
    ) -> TemplateAdminCheck:
        """Check whether a user holds admin permission on the template."""
        try:
            permission = await self.github_client.get_collaborator_permission(
                organization, template, username
            )
        except RESOLUTION_ERRORS as exc:
            logger.warning(
                "Template permission query failed, assuming no admin rights",
                extra={
                    "organization": organization,
                    "template": template,
                    "username": username,
                    "error": str(exc),
                },
            )
            return TemplateAdminCheck.denied_after_failure(exc)

        return TemplateAdminCheck(is_admin=permission == ADMIN_PERMISSION)

    async def check_org_repository_creation(
        self, organization: str, username: str
    ) -> OrgRepositoryCreationCheck:
        """Check whether a user may create repositories in the organization.

        Either the explicit repository creation permission flag or the admin
        role is sufficient.
        """
        try:
            membership = await self.github_client.get_org_membership(
                organization, username
            )
        except RESOLUTION_ERRORS as exc:
            logger.warning(
                "Organization membership query failed, denying approval",
                extra={
                    "organization": organization,
                    "username": username,
                    "error": str(exc),
                },
            )
            return OrgRepositoryCreationCheck.denied_after_failure(exc)

        return OrgRepositoryCreationCheck(
            can_create=bool(membership.can_create_repository)
            or membership.role == ADMIN_ROLE
        )

    async def can_approve(
        self,
        organization: str,
        username: str,
        is_template_admin: bool,
        common_prefix: Optional[str],
    ) -> bool:
        """Decide whether the requester may approve the creation.

        The organization query only runs when the template admin rule does
        not already grant approval.
        """
        if is_template_admin and common_prefix is not None:
            logger.debug(
                "Template admin with matching prefix may approve",
                extra={"username": username, "common_prefix": common_prefix},
            )
            return True

        org_check = await self.check_org_repository_creation(organization, username)
        return org_check.can_create
