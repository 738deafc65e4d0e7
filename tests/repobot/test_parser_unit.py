"""Unit tests for issue body tokenizing and request parsing."""

import asyncio

import pytest

from repobot.github.client import GitHubAPIError
from repobot.github.models import OrgMembership, RepositoryMetadata
from repobot.request.models import MalformedRequestError
from repobot.request.parser import Block, RequestParser, is_html_comment, tokenize_blocks


def run_async(coro):
    return asyncio.run(coro)


def _body(name: str = "Payments Api", template: str = "payments-template") -> str:
    return (
        "<!-- Fill in the sections below -->\n"
        "# Repository Name\n"
        "<!-- the name of the new repository -->\n"
        f"{name}\n"
        "\n"
        "# Template Repository\n"
        f"{template}\n"
        "\n"
        "## Notes\n"
        "Anything else\n"
    )


class TestTokenizeBlocks:
    def test_headings_and_paragraphs(self):
        blocks = tokenize_blocks("# Repository Name\nfoo-bar\n# Template Repository\nmy-template")
        assert blocks == [
            Block(kind="heading", text="Repository Name"),
            Block(kind="paragraph", text="foo-bar"),
            Block(kind="heading", text="Template Repository"),
            Block(kind="paragraph", text="my-template"),
        ]

    def test_html_comment_is_a_block(self):
        blocks = tokenize_blocks("<!-- hidden -->\n\ntext")
        assert blocks[0].kind == "html_block"
        assert is_html_comment(blocks[0])
        assert blocks[1] == Block(kind="paragraph", text="text")

    def test_list_items_are_not_top_level_paragraphs(self):
        blocks = tokenize_blocks("- one\n- two")
        assert [block.kind for block in blocks] == ["bullet_list"]

    def test_empty_body(self):
        assert tokenize_blocks("") == []


class TestRequestParser:
    def test_parses_names_and_resolves_template(self, github_client):
        github_client.get_repository.side_effect = None
        github_client.get_repository.return_value = RepositoryMetadata(name="my-template")
        parser = RequestParser(github_client)

        request = run_async(
            parser.parse(
                "# Repository Name\nfoo-bar\n# Template Repository\nmy-template",
                "acme",
                "dev1",
            )
        )

        assert request.parsed_name == "foo-bar"
        assert request.sanitized_name == "foo-bar"
        assert request.template_name == "my-template"
        assert request.resolved_template_name == "my-template"
        github_client.get_repository.assert_awaited_once_with("acme", "my-template")

    def test_html_comments_are_skipped(self, github_client):
        parser = RequestParser(github_client)

        request = run_async(parser.parse(_body(), "acme", "dev1"))

        assert request.parsed_name == "Payments Api"
        assert request.sanitized_name == "payments-api"
        assert request.resolved_template_name == "payments-template"

    def test_template_admin_with_prefix_can_approve(self, github_client):
        parser = RequestParser(github_client)

        request = run_async(parser.parse(_body(), "acme", "dev1"))

        assert request.is_requester_template_admin is True
        assert request.common_prefix == "payments"
        assert request.can_approve is True
        github_client.get_org_membership.assert_not_awaited()

    def test_missing_name_heading_is_not_an_error(self, github_client):
        parser = RequestParser(github_client)

        request = run_async(parser.parse("# Template Repository\npayments-template", "acme", "dev1"))

        assert request.parsed_name is None
        assert request.sanitized_name is None
        assert request.resolved_template_name == "payments-template"
        assert request.common_prefix is None
        assert request.can_approve is False

    def test_unknown_headings_are_ignored(self, github_client):
        parser = RequestParser(github_client)

        request = run_async(parser.parse("# Something Else\nvalue\n\n- a list", "acme", "dev1"))

        assert request.parsed_name is None
        assert request.template_name is None
        github_client.get_repository.assert_not_awaited()

    def test_heading_text_is_case_insensitive(self, github_client):
        parser = RequestParser(github_client)

        request = run_async(parser.parse("### REPOSITORY NAME \nFoo", "acme", "dev1"))

        assert request.sanitized_name == "foo"

    def test_heading_without_paragraph_raises(self, github_client):
        parser = RequestParser(github_client)

        with pytest.raises(MalformedRequestError) as exc_info:
            run_async(parser.parse("# Repository Name", "acme", "dev1"))

        assert exc_info.value.heading == "repository name"

    def test_heading_followed_by_heading_raises(self, github_client):
        parser = RequestParser(github_client)

        with pytest.raises(MalformedRequestError):
            run_async(
                parser.parse("# Repository Name\n# Template Repository\nx", "acme", "dev1")
            )

    def test_template_heading_followed_by_list_raises(self, github_client):
        parser = RequestParser(github_client)

        with pytest.raises(MalformedRequestError):
            run_async(parser.parse("# Template Repository\n- payments-template", "acme", "dev1"))

    def test_unknown_template_is_not_resolved(self, github_client):
        parser = RequestParser(github_client)

        request = run_async(parser.parse(_body(template="missing"), "acme", "dev1"))

        assert request.template_name == "missing"
        assert request.resolved_template_name is None
        assert request.is_requester_template_admin is False
        assert request.can_approve is False
        github_client.get_collaborator_permission.assert_not_awaited()

    def test_template_lookup_error_is_not_propagated(self, github_client):
        github_client.get_repository.side_effect = GitHubAPIError("boom", status_code=500)
        parser = RequestParser(github_client)

        request = run_async(parser.parse(_body(), "acme", "dev1"))

        assert request.resolved_template_name is None
        assert request.can_approve is False

    def test_template_is_looked_up_by_sanitized_name(self, github_client):
        parser = RequestParser(github_client)

        request = run_async(parser.parse(_body(template="Payments Template"), "acme", "dev1"))

        github_client.get_repository.assert_awaited_once_with("acme", "payments-template")
        assert request.resolved_template_name == "payments-template"

    def test_permission_query_failure_defaults_to_not_admin(self, github_client):
        github_client.get_collaborator_permission.side_effect = GitHubAPIError(
            "forbidden", status_code=403
        )
        parser = RequestParser(github_client)

        request = run_async(parser.parse(_body(), "acme", "dev1"))

        assert request.resolved_template_name == "payments-template"
        assert request.is_requester_template_admin is False
        assert request.can_approve is False

    def test_no_common_prefix_falls_back_to_org_membership(self, github_client):
        github_client.get_org_membership.return_value = OrgMembership(role="admin")
        parser = RequestParser(github_client)

        request = run_async(parser.parse(_body(name="Billing"), "acme", "dev1"))

        assert request.common_prefix is None
        assert request.can_approve is True
        github_client.get_org_membership.assert_awaited_once_with("acme", "dev1")

    def test_no_common_prefix_and_plain_member_cannot_approve(self, github_client):
        parser = RequestParser(github_client)

        request = run_async(parser.parse(_body(name="Billing"), "acme", "dev1"))

        assert request.can_approve is False

    def test_unexpected_template_response_is_not_propagated(self, github_client):
        github_client.get_repository.side_effect = AttributeError(
            "'list' object has no attribute 'items'"
        )
        parser = RequestParser(github_client)

        request = run_async(parser.parse(_body(), "acme", "dev1"))

        assert request.resolved_template_name is None
        assert request.can_approve is False
