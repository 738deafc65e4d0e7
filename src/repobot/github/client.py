"""GitHub API client for the repository bot.

This module provides an async wrapper around the GitHub REST and GraphQL
APIs covering every platform capability the bot consumes:
- Repository lookup, permission and organization membership queries
- Repository creation inside an organization
- Contents, teams, labels and autolink references
- Branch protection rules (GraphQL)
- Issue comments, closing and locking

Includes rate limiting and retry logic for API resilience.
"""

import asyncio
import logging
import random
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from repobot.github.models import (
    AutolinkReference,
    FileContent,
    Label,
    OrgMembership,
    RepositoryMetadata,
    TeamPermission,
)


logger = logging.getLogger(__name__)


# Scalar fields of a BranchProtectionRule that are also accepted by
# CreateBranchProtectionRuleInput.
BRANCH_PROTECTION_RULE_FIELDS = (
    "pattern",
    "allowsDeletions",
    "allowsForcePushes",
    "blocksCreations",
    "dismissesStaleReviews",
    "isAdminEnforced",
    "lockAllowsFetchAndMerge",
    "lockBranch",
    "requireLastPushApproval",
    "requiredApprovingReviewCount",
    "requiredDeploymentEnvironments",
    "requiredStatusCheckContexts",
    "requiresApprovingReviews",
    "requiresCodeOwnerReviews",
    "requiresCommitSignatures",
    "requiresConversationResolution",
    "requiresDeployments",
    "requiresLinearHistory",
    "requiresStatusChecks",
    "requiresStrictStatusChecks",
    "restrictsPushes",
    "restrictsReviewDismissals",
)

# Allowance connections of a BranchProtectionRule and the actor id list of
# CreateBranchProtectionRuleInput each one maps to.
BRANCH_PROTECTION_ALLOWANCES = {
    "pushAllowances": "pushActorIds",
    "bypassPullRequestAllowances": "bypassPullRequestActorIds",
    "bypassForcePushAllowances": "bypassForcePushActorIds",
    "reviewDismissalAllowances": "reviewDismissalActorIds",
}

LIST_BRANCH_PROTECTION_RULES_QUERY = """
query($owner: String!, $name: String!, $cursor: String) {
  repository(owner: $owner, name: $name) {
    branchProtectionRules(first: 100, after: $cursor) {
      nodes { %s %s }
      pageInfo { hasNextPage endCursor }
    }
  }
}
""" % (
    " ".join(BRANCH_PROTECTION_RULE_FIELDS),
    " ".join(
        "%s(first: 100) { nodes { actor { ... on Node { id } } } }" % connection
        for connection in BRANCH_PROTECTION_ALLOWANCES
    ),
)

CREATE_BRANCH_PROTECTION_RULE_MUTATION = """
mutation($input: CreateBranchProtectionRuleInput!) {
  createBranchProtectionRule(input: $input) {
    branchProtectionRule { id pattern }
  }
}
"""


class GitHubAPIError(Exception):
    """Raised when a GitHub API request fails.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code from the response.
        response_body: Response body from GitHub API.
        request_url: The URL that was requested.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url
        super().__init__(message)

    def __str__(self) -> str:
        if self.response_body:
            return f"{self.message}: {self.response_body[:500]}"
        return self.message


class RateLimitError(GitHubAPIError):
    """Raised when GitHub API rate limit is exceeded.

    Attributes:
        reset_at: Unix timestamp when the rate limit resets.
        retry_after: Seconds to wait before retrying.
    """

    def __init__(
        self,
        message: str,
        reset_at: Optional[int] = None,
        retry_after: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.reset_at = reset_at
        self.retry_after = retry_after


class GitHubClient:
    """Async GitHub API client with rate limiting and retry logic.

    This client implements the platform capabilities used by the request
    parser, the command handlers and the template clone sequence:

    - Automatic retry with exponential backoff for transient failures
    - Rate limit handling by respecting X-RateLimit-* headers
    - Support for both github.com and GitHub Enterprise Server

    Attributes:
        token: GitHub API token (PAT or GitHub App token).
        base_url: Base URL for GitHub API (default: https://api.github.com).
        max_retries: Maximum number of retry attempts for transient failures.
        base_delay: Base delay in seconds for exponential backoff.
        max_delay: Maximum delay in seconds between retries.
        timeout: Request timeout in seconds.

    Example:
        >>> client = GitHubClient(token="ghp_xxx")
        >>> async with client:
        ...     await client.create_comment("owner", "repo", 123, "Hello!")
    """

    # HTTP status codes that should trigger a retry
    RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

    PER_PAGE = 100

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the GitHub client.

        Args:
            token: GitHub API token for authentication.
            base_url: Base URL for GitHub API. Use this to support
                      GitHub Enterprise Server endpoints.
            max_retries: Maximum number of retry attempts.
            base_delay: Base delay in seconds for exponential backoff.
            max_delay: Maximum delay in seconds between retries.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating it if necessary."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._default_headers(),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    @property
    def graphql_url(self) -> str:
        """GraphQL endpoint matching the configured REST base URL.

        GitHub Enterprise Server serves REST under /api/v3 and GraphQL
        under /api/graphql.
        """
        if self.base_url.endswith("/api/v3"):
            return self.base_url[: -len("/v3")] + "/graphql"
        return f"{self.base_url}/graphql"

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "repo-bot/1.0",
        }

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _calculate_backoff(self, attempt: int) -> float:
        """Calculate backoff delay with full jitter.

        Args:
            attempt: The current retry attempt (0-indexed).

        Returns:
            Delay in seconds before the next retry.
        """
        exponential_delay = self.base_delay * (2 ** attempt)
        capped_delay = min(exponential_delay, self.max_delay)
        return random.uniform(0, capped_delay)

    def _parse_int_header(self, headers: httpx.Headers, name: str) -> Optional[int]:
        value = headers.get(name)
        if value is not None:
            try:
                return int(value)
            except ValueError:
                pass
        return None

    async def _handle_rate_limit(self, response: httpx.Response) -> None:
        """Raise a RateLimitError describing when the limit resets.

        Raises:
            RateLimitError: Always.
        """
        reset_at = self._parse_int_header(response.headers, "x-ratelimit-reset")

        retry_after = None
        if reset_at is not None:
            retry_after = max(0, reset_at - int(time.time()))

        retry_after_header = self._parse_int_header(response.headers, "retry-after")
        if retry_after_header is not None:
            retry_after = retry_after_header

        logger.warning(
            "GitHub API rate limit exceeded",
            extra={
                "reset_at": reset_at,
                "retry_after": retry_after,
                "limit": self._parse_int_header(response.headers, "x-ratelimit-limit"),
            },
        )

        raise RateLimitError(
            message="GitHub API rate limit exceeded",
            status_code=response.status_code,
            reset_at=reset_at,
            retry_after=retry_after,
            request_url=str(response.url),
        )

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Make an HTTP request with retry logic.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, PATCH).
            path: API path, or an absolute URL.
            json_data: Optional JSON body for the request.
            params: Optional query parameters.

        Returns:
            The HTTP response from GitHub.

        Raises:
            GitHubAPIError: If the request fails after all retries.
            RateLimitError: If rate limit is exceeded.
        """
        last_exception: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.request(
                    method=method,
                    url=path,
                    json=json_data,
                    params=params,
                )

                if response.status_code == 403:
                    remaining = self._parse_int_header(
                        response.headers, "x-ratelimit-remaining"
                    )
                    if remaining == 0:
                        await self._handle_rate_limit(response)

                if response.status_code == 429:
                    await self._handle_rate_limit(response)

                if response.status_code in self.RETRYABLE_STATUS_CODES:
                    if attempt < self.max_retries:
                        delay = self._calculate_backoff(attempt)
                        logger.warning(
                            "Retryable error from GitHub API",
                            extra={
                                "status_code": response.status_code,
                                "attempt": attempt + 1,
                                "max_retries": self.max_retries,
                                "delay": delay,
                                "path": path,
                            },
                        )
                        await asyncio.sleep(delay)
                        continue

                if response.status_code >= 400:
                    error_body = response.text
                    # 404 is an expected answer for lookups, callers decide
                    log = logger.debug if response.status_code == 404 else logger.error
                    log(
                        "GitHub API error",
                        extra={
                            "status_code": response.status_code,
                            "path": path,
                            "method": method,
                            "response_body": error_body[:500],
                        },
                    )
                    raise GitHubAPIError(
                        message=f"GitHub API error: {response.status_code} {method} {path}",
                        status_code=response.status_code,
                        response_body=error_body,
                        request_url=str(response.url),
                    )

                return response

            except GitHubAPIError:
                raise
            except httpx.TimeoutException as e:
                last_exception = e
                if attempt < self.max_retries:
                    delay = self._calculate_backoff(attempt)
                    logger.warning(
                        "Request timeout, retrying",
                        extra={"attempt": attempt + 1, "delay": delay, "path": path},
                    )
                    await asyncio.sleep(delay)
                    continue
            except httpx.RequestError as e:
                last_exception = e
                if attempt < self.max_retries:
                    delay = self._calculate_backoff(attempt)
                    logger.warning(
                        "Request error, retrying",
                        extra={
                            "error": str(e),
                            "attempt": attempt + 1,
                            "delay": delay,
                            "path": path,
                        },
                    )
                    await asyncio.sleep(delay)
                    continue

        logger.error(
            "GitHub API request failed after all retries",
            extra={
                "path": path,
                "method": method,
                "max_retries": self.max_retries,
                "last_error": str(last_exception),
            },
        )
        raise GitHubAPIError(
            message=f"Request failed after {self.max_retries} retries: {last_exception}",
            request_url=f"{self.base_url}{path}",
        )

    async def _paginate(self, path: str) -> List[Dict[str, Any]]:
        """Collect every item of a paginated list endpoint."""
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            response = await self._request(
                "GET", path, params={"per_page": self.PER_PAGE, "page": page}
            )
            batch = response.json()
            items.extend(batch)
            if len(batch) < self.PER_PAGE:
                return items
            page += 1

    async def _graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Run a GraphQL operation and return its data.

        Raises:
            GitHubAPIError: If the request fails or the response has errors.
        """
        response = await self._request(
            "POST",
            self.graphql_url,
            json_data={"query": query, "variables": variables},
        )
        payload = response.json()
        if payload.get("errors"):
            messages = "; ".join(
                error.get("message", str(error)) for error in payload["errors"]
            )
            raise GitHubAPIError(
                message=f"GitHub GraphQL error: {messages}",
                status_code=response.status_code,
                request_url=self.graphql_url,
            )
        return payload.get("data") or {}

    # -------------------------------------------------------------------------
    # Repositories and permissions
    # -------------------------------------------------------------------------

    async def get_repository(
        self, owner: str, name: str
    ) -> Optional[RepositoryMetadata]:
        """Get a repository, or None if it does not exist or is not readable.

        Raises:
            GitHubAPIError: For failures other than 404.
        """
        try:
            response = await self._request("GET", f"/repos/{owner}/{name}")
        except GitHubAPIError as e:
            if e.status_code == 404:
                return None
            raise
        return RepositoryMetadata.from_github_response(response.json())

    async def get_collaborator_permission(
        self, owner: str, repo: str, username: str
    ) -> str:
        """Get a user's permission level on a repository.

        Returns:
            One of "admin", "write", "read" or "none".
        """
        response = await self._request(
            "GET", f"/repos/{owner}/{repo}/collaborators/{username}/permission"
        )
        return response.json().get("permission", "none")

    async def get_org_membership(self, org: str, username: str) -> OrgMembership:
        """Get a user's membership in an organization."""
        response = await self._request("GET", f"/orgs/{org}/memberships/{username}")
        return OrgMembership.from_github_response(response.json())

    async def create_org_repository(
        self, org: str, name: str, template: RepositoryMetadata
    ) -> RepositoryMetadata:
        """Create a repository in an organization with a template's settings.

        The repository is initialized with a commit so the default branch
        exists for branch protection rules and file contents.
        """
        body = {"name": name, "auto_init": True, **template.creation_settings()}

        logger.info(
            "Creating repository",
            extra={"org": org, "repo": name, "template": template.name},
        )

        response = await self._request("POST", f"/orgs/{org}/repos", json_data=body)
        created = RepositoryMetadata.from_github_response(response.json())

        logger.info(
            "Repository created",
            extra={"org": org, "repo": name, "url": created.html_url},
        )
        return created

    # -------------------------------------------------------------------------
    # Contents
    # -------------------------------------------------------------------------

    async def get_file_content(
        self, owner: str, repo: str, path: str
    ) -> Optional[FileContent]:
        """Get a file's content, or None if the file does not exist."""
        try:
            response = await self._request(
                "GET", f"/repos/{owner}/{repo}/contents/{path}"
            )
        except GitHubAPIError as e:
            if e.status_code == 404:
                return None
            raise

        data = response.json()
        if not isinstance(data, dict) or data.get("type") != "file":
            return None

        return FileContent(
            path=data.get("path", path),
            content="".join(data.get("content", "").split()),
            sha=data.get("sha", ""),
        )

    async def create_or_update_file(
        self,
        owner: str,
        repo: str,
        path: str,
        message: str,
        content: str,
        sha: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create or update a file.

        Args:
            content: Base64 encoded file content.
            sha: Blob SHA of the file being replaced, if it exists.
        """
        body: Dict[str, Any] = {"message": message, "content": content}
        if sha:
            body["sha"] = sha

        response = await self._request(
            "PUT", f"/repos/{owner}/{repo}/contents/{path}", json_data=body
        )
        return response.json()

    # -------------------------------------------------------------------------
    # Teams
    # -------------------------------------------------------------------------

    async def list_team_permissions(self, owner: str, repo: str) -> List[TeamPermission]:
        """List the teams with access to a repository and their permission."""
        teams = await self._paginate(f"/repos/{owner}/{repo}/teams")
        return [
            TeamPermission(slug=team["slug"], permission=team["permission"])
            for team in teams
        ]

    async def set_team_permission(
        self, org: str, team_slug: str, owner: str, repo: str, permission: str
    ) -> None:
        """Grant a team a permission on a repository."""
        await self._request(
            "PUT",
            f"/orgs/{org}/teams/{team_slug}/repos/{owner}/{repo}",
            json_data={"permission": permission},
        )

    # -------------------------------------------------------------------------
    # Branch protection rules
    # -------------------------------------------------------------------------

    async def list_branch_protection_rules(
        self, owner: str, repo: str
    ) -> List[Dict[str, Any]]:
        """List branch protection rules with their full field set."""
        rules: List[Dict[str, Any]] = []
        cursor: Optional[str] = None
        while True:
            data = await self._graphql(
                LIST_BRANCH_PROTECTION_RULES_QUERY,
                {"owner": owner, "name": repo, "cursor": cursor},
            )
            repository = data.get("repository")
            if repository is None:
                raise GitHubAPIError(
                    message=f"Repository {owner}/{repo} not found",
                    status_code=404,
                )
            connection = repository["branchProtectionRules"]
            rules.extend(connection["nodes"])
            page_info = connection["pageInfo"]
            if not page_info["hasNextPage"]:
                return rules
            cursor = page_info["endCursor"]

    async def create_branch_protection_rule(
        self, repository_id: str, rule_fields: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Create a branch protection rule on a repository by node id.

        Args:
            repository_id: Node id of the repository to protect.
            rule_fields: A rule as returned by list_branch_protection_rules.
                Allowance connections are sent as the matching actor id
                lists.
        """
        fields = {
            key: value
            for key, value in rule_fields.items()
            if key in BRANCH_PROTECTION_RULE_FIELDS and value is not None
        }
        for connection, input_field in BRANCH_PROTECTION_ALLOWANCES.items():
            actor_ids = self._allowance_actor_ids(rule_fields.get(connection))
            if actor_ids:
                fields[input_field] = actor_ids

        data = await self._graphql(
            CREATE_BRANCH_PROTECTION_RULE_MUTATION,
            {"input": {"repositoryId": repository_id, **fields}},
        )
        return data.get("createBranchProtectionRule") or {}

    def _allowance_actor_ids(self, connection: Any) -> List[str]:
        # Actors of deleted teams, users or apps come back as null
        if not isinstance(connection, dict):
            return []
        actor_ids = []
        for node in connection.get("nodes") or []:
            actor = (node or {}).get("actor") or {}
            if actor.get("id"):
                actor_ids.append(actor["id"])
        return actor_ids

    # -------------------------------------------------------------------------
    # Labels
    # -------------------------------------------------------------------------

    async def list_labels(self, owner: str, repo: str) -> List[Label]:
        labels = await self._paginate(f"/repos/{owner}/{repo}/labels")
        return [
            Label(
                name=label["name"],
                color=label.get("color") or "ededed",
                description=label.get("description"),
            )
            for label in labels
        ]

    async def create_label(
        self,
        owner: str,
        repo: str,
        name: str,
        color: str,
        description: Optional[str] = None,
    ) -> None:
        body: Dict[str, Any] = {"name": name, "color": color}
        if description:
            body["description"] = description
        await self._request("POST", f"/repos/{owner}/{repo}/labels", json_data=body)

    async def delete_label(self, owner: str, repo: str, name: str) -> None:
        await self._request(
            "DELETE", f"/repos/{owner}/{repo}/labels/{quote(name, safe='')}"
        )

    # -------------------------------------------------------------------------
    # Autolink references
    # -------------------------------------------------------------------------

    async def list_autolinks(self, owner: str, repo: str) -> List[AutolinkReference]:
        response = await self._request("GET", f"/repos/{owner}/{repo}/autolinks")
        return [
            AutolinkReference(
                key_prefix=autolink["key_prefix"],
                url_template=autolink["url_template"],
                is_alphanumeric=autolink.get("is_alphanumeric", True),
            )
            for autolink in response.json()
        ]

    async def create_autolink(
        self,
        owner: str,
        repo: str,
        key_prefix: str,
        url_template: str,
        is_alphanumeric: bool = True,
    ) -> None:
        await self._request(
            "POST",
            f"/repos/{owner}/{repo}/autolinks",
            json_data={
                "key_prefix": key_prefix,
                "url_template": url_template,
                "is_alphanumeric": is_alphanumeric,
            },
        )

    # -------------------------------------------------------------------------
    # Issues
    # -------------------------------------------------------------------------

    async def create_comment(
        self,
        owner: str,
        repo: str,
        issue_number: int,
        body: str,
    ) -> Dict[str, Any]:
        """Create a comment on an issue.

        Args:
            owner: Repository owner (user or organization).
            repo: Repository name.
            issue_number: Issue number to comment on.
            body: Comment body in markdown format.

        Returns:
            The created comment data from GitHub API.
        """
        logger.info(
            "Creating comment on issue",
            extra={
                "owner": owner,
                "repo": repo,
                "issue_number": issue_number,
                "body_length": len(body),
            },
        )

        response = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues/{issue_number}/comments",
            json_data={"body": body},
        )
        return response.json()

    async def close_issue(self, owner: str, repo: str, issue_number: int) -> None:
        await self._request(
            "PATCH",
            f"/repos/{owner}/{repo}/issues/{issue_number}",
            json_data={"state": "closed"},
        )
        logger.info(
            "Issue closed",
            extra={"owner": owner, "repo": repo, "issue_number": issue_number},
        )

    async def lock_issue(
        self, owner: str, repo: str, issue_number: int, reason: str
    ) -> None:
        await self._request(
            "PUT",
            f"/repos/{owner}/{repo}/issues/{issue_number}/lock",
            json_data={"lock_reason": reason},
        )
        logger.info(
            "Issue locked",
            extra={
                "owner": owner,
                "repo": repo,
                "issue_number": issue_number,
                "reason": reason,
            },
        )

    async def health_check(self) -> bool:
        """Check if the GitHub API is accessible with the configured token."""
        try:
            response = await self.client.get("/user")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(
                "GitHub API health check failed",
                extra={"error": str(e)},
            )
            return False
