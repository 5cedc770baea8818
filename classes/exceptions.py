"""
Error types raised by the Azure DevOps workflow tool.
"""

from typing import List, Optional, Sequence


class AzureDevOpsToolError(Exception):
    """Base class for every error this tool raises on purpose."""


class AuthError(AzureDevOpsToolError):
    """The Azure CLI session could not be (re)established."""


class ConfigurationError(AzureDevOpsToolError, ValueError):
    """A required setting or credential is missing. Never retried."""


class ValidationError(AzureDevOpsToolError, ValueError):
    """User supplied input does not have the required shape."""


class TransportError(AzureDevOpsToolError):
    """
    An external call failed.

    Args:
        message: Human readable description
        target: The route, URL or command that failed
    """

    def __init__(self, message: str, target: Optional[str] = None):
        super().__init__(message)
        self.target = target


class AzCliError(TransportError):
    """A non-zero exit from the Azure CLI."""

    def __init__(self, command: Sequence[str], returncode: int, stderr: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr or "no error output"
        super().__init__(
            f"'{' '.join(self.command[:4])}' exited with code {returncode}: {detail}",
            target=" ".join(self.command),
        )


class GitCommandError(TransportError):
    """A non-zero exit from git."""

    def __init__(self, command: Sequence[str], returncode: int, stderr: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"'{' '.join(self.command)}' exited with code {returncode}: {stderr or 'no error output'}",
            target=" ".join(self.command),
        )


class PartialResultError(AzureDevOpsToolError):
    """Some work item details could not be fetched even after a recovery pass."""

    def __init__(self, records: List, missing_ids: List[int]):
        self.records = records
        self.missing_ids = missing_ids
        missing = ", ".join(str(i) for i in missing_ids)
        super().__init__(
            f"Fetched {len(records)} work items; {len(missing_ids)} could not be retrieved: {missing}"
        )


class WorkflowStepError(AzureDevOpsToolError):
    """A commit/pull request workflow step failed; later steps were not run."""

    def __init__(self, step: str, cause: BaseException):
        self.step = step
        self.cause = cause
        super().__init__(f"Step '{step}' failed: {cause}")
