"""
Data models for work items, patch documents and pull requests.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from classes.exceptions import ValidationError

AUTOGEN_TAG = "autogen"
DEFAULT_PAGE_SIZE = 5


def _lookup_key(value: str) -> str:
    return re.sub(r"[\s_\-]+", "", value).casefold()


class _NormalizedEnum(Enum):
    """Enum whose members can be looked up from loosely formatted user input."""

    @classmethod
    def _aliases(cls) -> Dict[str, str]:
        return {}

    @classmethod
    def normalize(cls, value):
        """
        Map a user supplied name onto a member.

        Casing, surrounding whitespace and separators are ignored. Unknown
        names raise ValidationError instead of falling back to a default.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{cls._label()} is required")

        key = _lookup_key(value)
        for member in cls:
            if key in (_lookup_key(member.value), _lookup_key(member.name)):
                return member
        alias = cls._aliases().get(key)
        if alias:
            return cls(alias)

        choices = ", ".join(member.value for member in cls)
        raise ValidationError(f"Unrecognized {cls._label()} '{value}'. Expected one of: {choices}")

    @classmethod
    def _label(cls) -> str:
        return "value"


class WorkItemType(_NormalizedEnum):
    """Work item types this tool can create."""
    BUG = "Bug"
    PRODUCT_BACKLOG_ITEM = "Product Backlog Item"
    TASK = "Task"

    @classmethod
    def _aliases(cls) -> Dict[str, str]:
        return {"pbi": "Product Backlog Item", "backlogitem": "Product Backlog Item"}

    @classmethod
    def _label(cls) -> str:
        return "work item type"


class WorkItemState(_NormalizedEnum):
    """States a new work item may be created in."""
    NEW = "New"
    ACTIVE = "Active"
    COMMITTED = "Committed"
    APPROVED = "Approved"
    IN_REVIEW = "In Review"

    @classmethod
    def _label(cls) -> str:
        return "state"


def normalize_tags(tags: Optional[List[str]]) -> List[str]:
    """Ordered, case-insensitively unique tags that always include the autogen tag."""
    result = [AUTOGEN_TAG]
    seen = {AUTOGEN_TAG.casefold()}
    for tag in tags or []:
        cleaned = tag.strip()
        if cleaned and cleaned.casefold() not in seen:
            seen.add(cleaned.casefold())
            result.append(cleaned)
    return result


@dataclass
class WorkItemRequest:
    """Everything needed to create one work item."""
    title: str
    work_item_type: WorkItemType = WorkItemType.BUG
    state: WorkItemState = WorkItemState.ACTIVE
    area_path: str = ""
    iteration_path: str = ""
    assigned_to: str = ""
    tags: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not isinstance(self.title, str) or not self.title.strip():
            raise ValidationError("Work item title must not be empty")
        self.work_item_type = WorkItemType.normalize(self.work_item_type)
        self.state = WorkItemState.normalize(self.state)
        self.tags = normalize_tags(self.tags)


@dataclass
class PatchOperation:
    """A single JSON Patch operation on a work item field."""
    path: str
    value: Any
    op: str = "add"

    def to_dict(self) -> Dict[str, Any]:
        return {"op": self.op, "path": self.path, "value": self.value}


@dataclass
class PatchDocument:
    """Ordered list of field operations describing a new work item."""
    operations: List[PatchOperation] = field(default_factory=list)

    def add(self, field_name: str, value: Any) -> None:
        self.operations.append(PatchOperation(path=f"/fields/{field_name}", value=value))

    @classmethod
    def from_request(cls, request: WorkItemRequest, include_tags: bool = True) -> "PatchDocument":
        """
        Build the document for a request.

        Empty optional fields are left out so that each populated field
        yields exactly one operation.

        Args:
            request: The work item to describe
            include_tags: Whether the transport accepts System.Tags

        Returns:
            PatchDocument
        """
        document = cls()
        document.add("System.Title", request.title)
        if request.area_path:
            document.add("System.AreaPath", request.area_path)
        if request.iteration_path:
            document.add("System.IterationPath", request.iteration_path)
        if request.assigned_to:
            document.add("System.AssignedTo", request.assigned_to)
        document.add("System.State", request.state.value)
        if include_tags and request.tags:
            document.add("System.Tags", "; ".join(request.tags))
        return document

    @property
    def field_names(self) -> List[str]:
        return [operation.path.rsplit("/", 1)[-1] for operation in self.operations]

    def to_list(self) -> List[Dict[str, Any]]:
        return [operation.to_dict() for operation in self.operations]

    def __iter__(self) -> Iterator[PatchOperation]:
        return iter(self.operations)

    def __len__(self) -> int:
        return len(self.operations)


_FRACTION = re.compile(r"\.(\d+)")


def _pad_fraction(match) -> str:
    return "." + match.group(1)[:6].ljust(6, "0")


def parse_api_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an API timestamp such as ``2024-03-01T10:00:00.57Z``.

    The service trims trailing zeros from the fraction, so it is padded (or
    cut) to six digits for ``fromisoformat`` on interpreters before 3.11.
    """
    if not value:
        return None
    try:
        text = _FRACTION.sub(_pad_fraction, value.replace("Z", "+00:00"), count=1)
        return datetime.fromisoformat(text)
    except (ValueError, AttributeError, TypeError):
        return None


@dataclass
class WorkItemRecord:
    """Read-only copy of a work item held by Azure DevOps."""
    id: int
    title: str
    state: str = ""
    created_date: Optional[datetime] = None
    work_item_type: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "WorkItemRecord":
        """Create WorkItemRecord from API response."""
        fields = data.get("fields") or {}
        work_item_id = data.get("id", fields.get("System.Id"))
        if work_item_id is None:
            raise ValueError("Work item response has no id")
        return cls(
            id=int(work_item_id),
            title=fields.get("System.Title", ""),
            state=fields.get("System.State", ""),
            created_date=parse_api_datetime(fields.get("System.CreatedDate")),
            work_item_type=fields.get("System.WorkItemType", ""),
        )

    def compact(self) -> str:
        return f"#{self.id}: {self.title}"


@dataclass(frozen=True)
class Page:
    """A window of `size` items starting at `skip` in a fixed result set."""
    skip: int
    total: int
    size: int = DEFAULT_PAGE_SIZE

    @property
    def end(self) -> int:
        return min(self.skip + self.size, self.total)

    @property
    def has_more(self) -> bool:
        return self.skip + self.size < self.total

    @property
    def number(self) -> int:
        return self.skip // self.size + 1


def normalize_reviewers(names: List[str], email_domain: str) -> List[str]:
    """
    Turn reviewer names into unique addresses.

    Names without an '@' get '@<email_domain>' appended.
    """
    reviewers = []
    for name in names:
        cleaned = name.strip()
        if not cleaned:
            continue
        if "@" not in cleaned and email_domain:
            cleaned = f"{cleaned}@{email_domain.lstrip('@')}"
        if cleaned.lower() not in (r.lower() for r in reviewers):
            reviewers.append(cleaned)
    return reviewers


@dataclass
class PullRequestRequest:
    """Parameters for a single pull request creation."""
    source_branch: str
    title: str
    target_branch: str = "dev"
    description: str = ""
    work_item_id: Optional[int] = None
    reviewers: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.title or not self.title.strip():
            raise ValidationError("Pull request title must not be empty")
        if not self.source_branch:
            raise ValidationError("Pull request source branch is required")


@dataclass
class PullRequestRecord:
    """Pull request returned by `az repos pr create`."""
    pull_request_id: int
    title: str
    status: str = ""
    repository: str = ""
    url: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "PullRequestRecord":
        """Create PullRequestRecord from API response."""
        repository = data.get("repository") or {}
        pr_id = data.get("pullRequestId", 0)
        url = None
        if repository.get("webUrl") and pr_id:
            url = f"{repository['webUrl'].rstrip('/')}/pullrequest/{pr_id}"
        return cls(
            pull_request_id=pr_id,
            title=data.get("title", ""),
            status=data.get("status", ""),
            repository=repository.get("name", ""),
            url=url,
        )
