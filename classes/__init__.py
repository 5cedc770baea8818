"""
Azure DevOps workflow tool classes package.
Contains the clients, models and workflow used by the command line entry points.

Only the dependency-free modules are re-exported here; config.config imports
classes.exceptions, so client modules are imported from their own modules.
"""

from .exceptions import (
    AuthError,
    AzCliError,
    AzureDevOpsToolError,
    ConfigurationError,
    GitCommandError,
    PartialResultError,
    TransportError,
    ValidationError,
    WorkflowStepError,
)
from .models import (
    PatchDocument,
    PullRequestRecord,
    PullRequestRequest,
    WorkItemRecord,
    WorkItemRequest,
    WorkItemState,
    WorkItemType,
)

__all__ = [
    'AuthError',
    'AzCliError',
    'AzureDevOpsToolError',
    'ConfigurationError',
    'GitCommandError',
    'PartialResultError',
    'TransportError',
    'ValidationError',
    'WorkflowStepError',
    'PatchDocument',
    'PullRequestRecord',
    'PullRequestRequest',
    'WorkItemRecord',
    'WorkItemRequest',
    'WorkItemState',
    'WorkItemType',
]
