"""Repository provisioning from templates.

This module runs the approval workflow and the template clone sequence
that creates the requested repository.
"""

from repobot.provisioning.approval import LOCK_REASON, ApprovalWorkflow
from repobot.provisioning.cloner import CODEOWNERS_PATHS, TemplateCloner
from repobot.provisioning.models import ProvisioningError, ProvisioningOutcome

__all__ = [
    "ApprovalWorkflow",
    "CODEOWNERS_PATHS",
    "LOCK_REASON",
    "ProvisioningError",
    "ProvisioningOutcome",
    "TemplateCloner",
]
