"""Repository request parsing and authorization.

This module turns the body of a request issue into a RepositoryRequest:
- Tokenizes the markdown and extracts the repository and template names
- Sanitizes the requested name into kebab-case
- Resolves the template and the requester's permissions on GitHub
- Decides whether the requester may approve the creation
"""

from repobot.request.authorization import (
    AuthorizationResolver,
    OrgRepositoryCreationCheck,
    TemplateAdminCheck,
)
from repobot.request.models import MalformedRequestError, RepositoryRequest
from repobot.request.naming import common_prefix, sanitize_repository_name
from repobot.request.parser import RequestParser, tokenize_blocks

__all__ = [
    "AuthorizationResolver",
    "MalformedRequestError",
    "OrgRepositoryCreationCheck",
    "RepositoryRequest",
    "RequestParser",
    "TemplateAdminCheck",
    "common_prefix",
    "sanitize_repository_name",
    "tokenize_blocks",
]
