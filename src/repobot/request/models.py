"""Repository request models.

This module defines the data models produced by parsing an issue:
- RepositoryRequest: the structured, resolved request and its approval
  decision
- MalformedRequestError: raised when the issue does not follow the
  request template structure

A RepositoryRequest is rebuilt for every issue and approval event and never
persisted, so the approval decision always reflects current permissions.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class MalformedRequestError(Exception):
    """Raised when a recognized heading is not followed by a paragraph.

    Attributes:
        heading: The normalized heading text that lacked its paragraph.
    """

    def __init__(self, heading: str, message: Optional[str] = None):
        self.heading = heading
        self.message = message or (
            f"Could not parse {heading}, no paragraph after the '{heading}' heading"
        )
        super().__init__(self.message)


class RepositoryRequest(BaseModel):
    """A repository creation request parsed from an issue body.

    Attributes:
        parsed_name: Requested repository name as written.
        sanitized_name: Kebab-case form of parsed_name. Set iff parsed_name
            is set.
        template_name: Template repository name as written.
        resolved_template_name: Name of the template as reported by GitHub,
            set only when the lookup succeeded.
        is_requester_template_admin: Whether the requester is admin on the
            resolved template. Always False without a resolved template.
        common_prefix: Shared leading "-" segments of sanitized_name and
            resolved_template_name.
        can_approve: Whether the requester may approve the creation.
    """

    model_config = ConfigDict(frozen=True)

    parsed_name: Optional[str] = None
    sanitized_name: Optional[str] = None
    template_name: Optional[str] = None
    resolved_template_name: Optional[str] = None
    is_requester_template_admin: bool = False
    common_prefix: Optional[str] = None
    can_approve: bool = False

    @property
    def is_complete(self) -> bool:
        """Both the target name and the template are known."""
        return bool(self.sanitized_name and self.resolved_template_name)

    def to_log_dict(self) -> Dict[str, Any]:
        return self.model_dump()
