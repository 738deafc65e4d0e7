"""Pytest configuration and shared fixtures for all tests."""

from unittest.mock import AsyncMock

import pytest

from repobot.github.client import GitHubClient
from repobot.github.models import OrgMembership, RepositoryMetadata


@pytest.fixture
def github_client():
    """A mocked GitHub client describing a small organization.

    - template "payments-template" exists, everything else is missing
    - the requester is admin on every repository
    - the requester is a plain organization member
    """
    client = AsyncMock(spec=GitHubClient)

    async def get_repository(owner, name):
        if name == "payments-template":
            return RepositoryMetadata(
                name="payments-template",
                full_name=f"{owner}/payments-template",
                node_id="R_template",
            )
        return None

    client.get_repository.side_effect = get_repository
    client.get_collaborator_permission.return_value = "admin"
    client.get_org_membership.return_value = OrgMembership(role="member")
    client.create_comment.return_value = {"id": 1}
    return client
