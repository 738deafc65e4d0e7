"""Unit tests for the GitHub API client against a mocked transport."""

import asyncio
import json

import httpx
import pytest

from repobot.github.client import GitHubAPIError, GitHubClient, RateLimitError
from repobot.github.models import RepositoryMetadata


def run_async(coro):
    return asyncio.run(coro)


class Recorder:
    """Mock transport handler that records requests and replays responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if callable(response):
            return response(request)
        return response


def _client(recorder, base_url="https://api.github.com", **kwargs) -> GitHubClient:
    return GitHubClient(
        token="ghp_test",
        base_url=base_url,
        base_delay=0,
        transport=httpx.MockTransport(recorder),
        **kwargs,
    )


def _body(request: httpx.Request):
    return json.loads(request.content)


async def _call(client, method, *args):
    async with client:
        return await getattr(client, method)(*args)


class TestTransport:
    def test_sends_auth_headers(self):
        recorder = Recorder(httpx.Response(200, json={"permission": "write"}))

        permission = run_async(
            _call(_client(recorder), "get_collaborator_permission", "acme", "svc", "dev1")
        )

        assert permission == "write"
        request = recorder.requests[0]
        assert request.headers["Authorization"] == "Bearer ghp_test"
        assert request.url.path == "/repos/acme/svc/collaborators/dev1/permission"

    def test_retries_server_errors(self):
        recorder = Recorder(
            httpx.Response(502, text="bad gateway"),
            httpx.Response(200, json={"role": "admin", "state": "active"}),
        )

        membership = run_async(_call(_client(recorder), "get_org_membership", "acme", "dev1"))

        assert membership.role == "admin"
        assert len(recorder.requests) == 2

    def test_gives_up_after_max_retries(self):
        recorder = Recorder(*[httpx.Response(503, text="unavailable")] * 3)

        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(_call(_client(recorder, max_retries=2), "get_org_membership", "acme", "dev1"))

        assert exc_info.value.status_code == 503
        assert len(recorder.requests) == 3

    def test_client_errors_are_not_retried(self):
        recorder = Recorder(httpx.Response(422, text='{"message": "Validation Failed"}'))

        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(_call(_client(recorder), "close_issue", "acme", "requests", 1))

        assert exc_info.value.status_code == 422
        assert "Validation Failed" in str(exc_info.value)
        assert len(recorder.requests) == 1

    def test_rate_limit(self):
        recorder = Recorder(
            httpx.Response(403, headers={"x-ratelimit-remaining": "0", "retry-after": "30"})
        )

        with pytest.raises(RateLimitError) as exc_info:
            run_async(_call(_client(recorder), "get_org_membership", "acme", "dev1"))

        assert exc_info.value.retry_after == 30

    def test_connection_errors_are_retried(self):
        def fail(request):
            raise httpx.ConnectError("refused", request=request)

        recorder = Recorder(fail, httpx.Response(200, json={"id": 5}))

        comment = run_async(_call(_client(recorder), "create_comment", "acme", "requests", 1, "hi"))

        assert comment == {"id": 5}


class TestRepositories:
    def test_missing_repository_is_none(self):
        recorder = Recorder(httpx.Response(404, json={"message": "Not Found"}))

        assert run_async(_call(_client(recorder), "get_repository", "acme", "nope")) is None

    def test_repository_metadata(self):
        recorder = Recorder(
            httpx.Response(
                200,
                json={
                    "name": "payments-template",
                    "full_name": "acme/payments-template",
                    "node_id": "R_1",
                    "private": True,
                    "description": None,
                    "delete_branch_on_merge": True,
                },
            )
        )

        repository = run_async(_call(_client(recorder), "get_repository", "acme", "payments-template"))

        assert repository.node_id == "R_1"
        assert repository.private is True
        assert repository.delete_branch_on_merge is True

    def test_other_lookup_errors_propagate(self):
        recorder = Recorder(httpx.Response(401, json={"message": "Bad credentials"}))

        with pytest.raises(GitHubAPIError):
            run_async(_call(_client(recorder), "get_repository", "acme", "svc"))

    def test_create_org_repository_copies_settings(self):
        recorder = Recorder(
            httpx.Response(201, json={"name": "payments-api", "html_url": "https://x/payments-api"})
        )
        template = RepositoryMetadata(name="payments-template", private=True, has_wiki=False)

        created = run_async(
            _call(_client(recorder), "create_org_repository", "acme", "payments-api", template)
        )

        assert created.html_url == "https://x/payments-api"
        request = recorder.requests[0]
        assert request.url.path == "/orgs/acme/repos"
        body = _body(request)
        assert body["name"] == "payments-api"
        assert body["auto_init"] is True
        assert body["private"] is True
        assert body["has_wiki"] is False


class TestContents:
    def test_file_content_strips_line_breaks(self):
        recorder = Recorder(
            httpx.Response(
                200,
                json={"type": "file", "path": "CODEOWNERS", "content": "KiBA\nYWNt\n", "sha": "s1"},
            )
        )

        content = run_async(_call(_client(recorder), "get_file_content", "acme", "t", "CODEOWNERS"))

        assert content.content == "KiBAYWNt"
        assert content.sha == "s1"

    def test_missing_file_is_none(self):
        recorder = Recorder(httpx.Response(404))

        assert run_async(_call(_client(recorder), "get_file_content", "acme", "t", "CODEOWNERS")) is None

    def test_directory_is_none(self):
        recorder = Recorder(httpx.Response(200, json=[{"type": "file"}]))

        assert run_async(_call(_client(recorder), "get_file_content", "acme", "t", "docs")) is None


class TestLists:
    def test_pagination_follows_full_pages(self):
        first = [{"name": f"label-{i}", "color": "fff"} for i in range(100)]
        recorder = Recorder(
            httpx.Response(200, json=first),
            httpx.Response(200, json=[{"name": "last", "color": None}]),
        )

        labels = run_async(_call(_client(recorder), "list_labels", "acme", "svc"))

        assert len(labels) == 101
        assert labels[-1].color == "ededed"
        assert [r.url.params["page"] for r in recorder.requests] == ["1", "2"]
        assert recorder.requests[0].url.params["per_page"] == "100"

    def test_label_name_is_quoted(self):
        recorder = Recorder(httpx.Response(204))

        run_async(_call(_client(recorder), "delete_label", "acme", "svc", "good first issue"))

        assert recorder.requests[0].url.raw_path == b"/repos/acme/svc/labels/good%20first%20issue"

    def test_team_permissions(self):
        recorder = Recorder(
            httpx.Response(200, json=[{"slug": "payments", "permission": "maintain"}]),
        )

        teams = run_async(_call(_client(recorder), "list_team_permissions", "acme", "svc"))

        assert teams[0].slug == "payments"
        assert teams[0].permission == "maintain"


class TestGraphQL:
    def test_enterprise_graphql_url(self):
        client = GitHubClient(token="t", base_url="https://ghe.acme.test/api/v3/")
        assert client.graphql_url == "https://ghe.acme.test/api/graphql"

    def test_public_graphql_url(self):
        assert GitHubClient(token="t").graphql_url == "https://api.github.com/graphql"

    def test_branch_protection_rules_are_paginated(self):
        def page(nodes, has_next, cursor=None):
            return httpx.Response(
                200,
                json={
                    "data": {
                        "repository": {
                            "branchProtectionRules": {
                                "nodes": nodes,
                                "pageInfo": {"hasNextPage": has_next, "endCursor": cursor},
                            }
                        }
                    }
                },
            )

        recorder = Recorder(
            page([{"pattern": "main"}], True, "c1"),
            page([{"pattern": "release/*"}], False),
        )

        rules = run_async(_call(_client(recorder), "list_branch_protection_rules", "acme", "t"))

        assert [rule["pattern"] for rule in rules] == ["main", "release/*"]
        assert _body(recorder.requests[1])["variables"]["cursor"] == "c1"

    def test_create_rule_drops_unknown_and_null_fields(self):
        recorder = Recorder(
            httpx.Response(200, json={"data": {"createBranchProtectionRule": {"branchProtectionRule": {"id": "BPR_1"}}}})
        )

        run_async(
            _call(
                _client(recorder),
                "create_branch_protection_rule",
                "R_new",
                {"pattern": "main", "id": "BPR_old", "requiredApprovingReviewCount": None},
            )
        )

        assert _body(recorder.requests[0])["variables"]["input"] == {
            "repositoryId": "R_new",
            "pattern": "main",
        }

    def test_rule_query_reads_allowances(self):
        recorder = Recorder(
            httpx.Response(
                200,
                json={
                    "data": {
                        "repository": {
                            "branchProtectionRules": {
                                "nodes": [],
                                "pageInfo": {"hasNextPage": False, "endCursor": None},
                            }
                        }
                    }
                },
            )
        )

        run_async(_call(_client(recorder), "list_branch_protection_rules", "acme", "t"))

        query = _body(recorder.requests[0])["query"]
        for connection in (
            "pushAllowances",
            "bypassPullRequestAllowances",
            "bypassForcePushAllowances",
            "reviewDismissalAllowances",
        ):
            assert connection in query

    def test_create_rule_sends_allowance_actor_ids(self):
        recorder = Recorder(
            httpx.Response(200, json={"data": {"createBranchProtectionRule": {}}})
        )
        rule = {
            "pattern": "main",
            "restrictsPushes": True,
            "pushAllowances": {
                "nodes": [{"actor": {"id": "T_release"}}, {"actor": None}]
            },
            "bypassPullRequestAllowances": {"nodes": [{"actor": {"id": "U_lead"}}]},
            "bypassForcePushAllowances": {"nodes": []},
            "reviewDismissalAllowances": {"nodes": [{"actor": {"id": "T_maintainers"}}]},
        }

        run_async(_call(_client(recorder), "create_branch_protection_rule", "R_new", rule))

        assert _body(recorder.requests[0])["variables"]["input"] == {
            "repositoryId": "R_new",
            "pattern": "main",
            "restrictsPushes": True,
            "pushActorIds": ["T_release"],
            "bypassPullRequestActorIds": ["U_lead"],
            "reviewDismissalActorIds": ["T_maintainers"],
        }

    def test_graphql_errors_raise(self):
        recorder = Recorder(httpx.Response(200, json={"errors": [{"message": "Resource not accessible"}]}))

        with pytest.raises(GitHubAPIError, match="Resource not accessible"):
            run_async(_call(_client(recorder), "list_branch_protection_rules", "acme", "t"))


class TestIssues:
    def test_close_issue(self):
        recorder = Recorder(httpx.Response(200, json={}))

        run_async(_call(_client(recorder), "close_issue", "acme", "requests", 4))

        request = recorder.requests[0]
        assert request.method == "PATCH"
        assert request.url.path == "/repos/acme/requests/issues/4"
        assert _body(request) == {"state": "closed"}

    def test_lock_issue(self):
        recorder = Recorder(httpx.Response(204))

        run_async(_call(_client(recorder), "lock_issue", "acme", "requests", 4, "resolved"))

        request = recorder.requests[0]
        assert request.method == "PUT"
        assert request.url.path == "/repos/acme/requests/issues/4/lock"
        assert _body(request) == {"lock_reason": "resolved"}
