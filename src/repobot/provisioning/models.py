"""Provisioning results and errors."""

from typing import Optional

from pydantic import BaseModel


class ProvisioningError(Exception):
    """Raised when a step of the template clone sequence fails.

    Steps completed before the failure are not undone.

    Attributes:
        step: Name of the failed step.
        repository: Full name of the repository being provisioned.
    """

    def __init__(self, step: str, repository: str, cause: BaseException):
        self.step = step
        self.repository = repository
        self.cause = cause
        super().__init__(f"Step '{step}' failed for {repository}: {cause}")


class ProvisioningOutcome(BaseModel):
    """Result of a template clone attempt, used to render the final comment.

    Attributes:
        succeeded: Whether every clone step completed.
        repository_url: URL of the created repository on success.
        error: Error text on failure.
    """

    succeeded: bool
    repository_url: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, repository_url: str) -> "ProvisioningOutcome":
        return cls(succeeded=True, repository_url=repository_url)

    @classmethod
    def failure(cls, error: BaseException) -> "ProvisioningOutcome":
        return cls(succeeded=False, error=str(error))
