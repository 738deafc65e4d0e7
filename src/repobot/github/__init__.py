"""GitHub API client for repository, issue and organization interactions.

This module provides a wrapper around the GitHub API for:
- Looking up repositories, permissions and organization memberships
- Creating repositories and copying template configuration
- Commenting on, closing and locking issues

Includes rate limiting and retry logic for API resilience.
"""

from repobot.github.client import (
    GitHubAPIError,
    GitHubClient,
    RateLimitError,
)
from repobot.github.models import (
    AutolinkReference,
    FileContent,
    Label,
    OrgMembership,
    RepositoryMetadata,
    TeamPermission,
)

__all__ = [
    "AutolinkReference",
    "FileContent",
    "GitHubAPIError",
    "GitHubClient",
    "Label",
    "OrgMembership",
    "RateLimitError",
    "RepositoryMetadata",
    "TeamPermission",
]
