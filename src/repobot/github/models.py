"""GitHub API record models consumed by the bot.

These models keep only the fields the request parser and the template clone
sequence need from GitHub REST responses. Unknown fields are ignored so the
models tolerate additions to the API.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class RepositoryMetadata(BaseModel):
    """Subset of a GitHub repository record.

    The merge, feature and visibility flags are copied from a template into
    a newly created repository.
    """

    name: str
    full_name: str = ""
    node_id: str = ""
    html_url: str = ""
    description: Optional[str] = None
    private: bool = False
    visibility: Optional[str] = None
    default_branch: str = "main"
    has_issues: bool = True
    has_projects: bool = True
    has_wiki: bool = True
    allow_squash_merge: bool = True
    allow_merge_commit: bool = True
    allow_rebase_merge: bool = True
    allow_auto_merge: bool = False
    delete_branch_on_merge: bool = False

    @classmethod
    def from_github_response(cls, data: Dict[str, Any]) -> "RepositoryMetadata":
        """Build metadata from a raw repository response.

        GitHub omits merge settings for callers without push access, so
        missing or null values fall back to the model defaults.
        """
        fields = {
            key: value
            for key, value in data.items()
            if key in cls.model_fields and value is not None
        }
        return cls(**fields)

    def creation_settings(self) -> Dict[str, Any]:
        """Settings to inherit when creating a repository from this one."""
        settings: Dict[str, Any] = {
            "private": self.private,
            "has_issues": self.has_issues,
            "has_projects": self.has_projects,
            "has_wiki": self.has_wiki,
            "allow_squash_merge": self.allow_squash_merge,
            "allow_merge_commit": self.allow_merge_commit,
            "allow_rebase_merge": self.allow_rebase_merge,
            "allow_auto_merge": self.allow_auto_merge,
            "delete_branch_on_merge": self.delete_branch_on_merge,
        }
        if self.visibility:
            settings["visibility"] = self.visibility
        if self.description:
            settings["description"] = self.description
        return settings


class FileContent(BaseModel):
    """A file read through the contents API.

    Attributes:
        path: Path of the file in the repository.
        content: Base64 encoded file content, line breaks removed.
        sha: Blob SHA of the file.
    """

    path: str
    content: str
    sha: str = ""


class TeamPermission(BaseModel):
    """A team's permission binding on a repository."""

    slug: str
    permission: str


class Label(BaseModel):
    """An issue label definition."""

    name: str
    color: str = "ededed"
    description: Optional[str] = None


class AutolinkReference(BaseModel):
    """An autolink reference definition."""

    key_prefix: str
    url_template: str
    is_alphanumeric: bool = True


class OrgMembership(BaseModel):
    """A user's membership in an organization.

    Attributes:
        role: Membership role, "admin" or "member".
        state: Membership state, "active" or "pending".
        can_create_repository: Explicit repository creation permission
            flag, when GitHub reports one.
    """

    role: str
    state: str = "active"
    can_create_repository: Optional[bool] = Field(default=None)

    @classmethod
    def from_github_response(cls, data: Dict[str, Any]) -> "OrgMembership":
        permissions = data.get("permissions") or {}
        return cls(
            role=data.get("role", "member"),
            state=data.get("state", "active"),
            can_create_repository=permissions.get("can_create_repository"),
        )
