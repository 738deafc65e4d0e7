"""Unit tests for webhook signature checks and payload parsing."""

import hashlib
import hmac

import pytest

from repobot.webhook.handler import WebhookHandler, create_webhook_handler
from repobot.webhook.models import CommentAction, IssueAction, IssueCommentEvent, IssueEvent


def _repository():
    return {"name": "repository-requests", "owner": {"login": "acme"}}


def _issue_payload(action="opened", **issue_overrides):
    issue = {"number": 12, "body": "# Repository Name\nfoo", "user": {"login": "dev1"}}
    issue.update(issue_overrides)
    return {"action": action, "issue": issue, "repository": _repository()}


def _comment_payload(action="created", body="/repo-bot approve"):
    return {
        "action": action,
        "issue": {"number": 12, "body": "# Repository Name\nfoo", "user": {"login": "dev1"}},
        "comment": {"body": body, "user": {"login": "lead"}},
        "repository": _repository(),
    }


def _sign(secret: str, body: bytes) -> str:
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


class TestSignature:
    def test_valid_signature(self):
        handler = WebhookHandler(secret="s3cret")
        body = b'{"action": "opened"}'

        assert handler.verify_signature(body, _sign("s3cret", body)) is True

    def test_wrong_secret(self):
        handler = WebhookHandler(secret="s3cret")
        body = b'{"action": "opened"}'

        assert handler.verify_signature(body, _sign("other", body)) is False

    @pytest.mark.parametrize("header", [None, "", "sha1=abc", "abc"])
    def test_missing_or_malformed_header(self, header):
        assert WebhookHandler(secret="s3cret").verify_signature(b"{}", header) is False

    def test_no_secret_accepts_everything(self):
        assert create_webhook_handler().verify_signature(b"{}", None) is True


class TestIssueEvents:
    @pytest.mark.parametrize("action", ["opened", "edited"])
    def test_handled_actions(self, action):
        event = WebhookHandler().parse("issues", _issue_payload(action))

        assert isinstance(event, IssueEvent)
        assert event.action == IssueAction(action)
        assert event.owner == "acme"
        assert event.repository == "repository-requests"
        assert event.author == "dev1"
        assert event.issue_id == "acme/repository-requests#12"

    @pytest.mark.parametrize("action", ["closed", "labeled", None])
    def test_other_actions_are_ignored(self, action):
        assert WebhookHandler().parse("issues", _issue_payload(action)) is None

    def test_null_body_becomes_empty(self):
        event = WebhookHandler().parse("issues", _issue_payload(body=None))
        assert event.body == ""

    def test_missing_author_is_invalid(self):
        assert WebhookHandler().parse("issues", _issue_payload(user=None)) is None

    def test_invalid_issue_number(self):
        assert WebhookHandler().parse("issues", _issue_payload(number=0)) is None

    def test_missing_repository(self):
        payload = _issue_payload()
        del payload["repository"]
        assert WebhookHandler().parse("issues", payload) is None

    def test_non_dict_payload(self):
        assert WebhookHandler().parse("issues", ["not", "a", "dict"]) is None


class TestIssueCommentEvents:
    def test_created(self):
        event = WebhookHandler().parse("issue_comment", _comment_payload())

        assert isinstance(event, IssueCommentEvent)
        assert event.action == CommentAction.CREATED
        assert event.comment_body == "/repo-bot approve"
        assert event.issue_body == "# Repository Name\nfoo"
        assert event.commenter == "lead"

    @pytest.mark.parametrize("action", ["edited", "deleted"])
    def test_other_actions_are_ignored(self, action):
        assert WebhookHandler().parse("issue_comment", _comment_payload(action)) is None

    def test_missing_comment(self):
        payload = _comment_payload()
        del payload["comment"]
        assert WebhookHandler().parse("issue_comment", payload) is None


def test_unsupported_event_name():
    assert WebhookHandler().parse("push", {"ref": "refs/heads/main"}) is None
