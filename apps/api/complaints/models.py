from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Sequence

from .state import ComplaintStatus


class HistoryAction(str, Enum):
    """Kinds of state-changing actions recorded in the history."""

    STATUS_CHANGED = "status_changed"
    REASSIGNED = "reassigned"
    DEPARTMENT_CHANGED = "department_changed"
    REMARK_UPDATED = "remark_updated"


class BulkAction(str, Enum):
    """Admin actions applied to several complaints in one request."""

    UPDATE_STATUS = "updateStatus"
    ASSIGN = "assign"
    DELETE = "delete"


@dataclass(frozen=True, slots=True)
class Attachment:
    """Reference to a file held by the external storage collaborator."""

    filename: str
    url: str
    original_name: str = ""
    mime_type: str = ""
    size: int = 0
    uploaded_by: str | None = None

    def to_mapping(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "url": self.url,
            "original_name": self.original_name,
            "mime_type": self.mime_type,
            "size": self.size,
            "uploaded_by": self.uploaded_by,
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Attachment":
        return cls(
            filename=str(data["filename"]),
            url=str(data["url"]),
            original_name=str(data.get("original_name") or ""),
            mime_type=str(data.get("mime_type") or ""),
            size=int(data.get("size") or 0),
            uploaded_by=data.get("uploaded_by"),
        )


@dataclass(frozen=True, slots=True)
class Complaint:
    """Aggregate root of the complaint workflow."""

    id: str
    title: str
    description: str
    error_type: str
    error_screen: str
    nature_type_id: str
    client_id: str
    department_id: str
    status: ComplaintStatus
    current_assignee_id: str | None
    first_assignee_id: str | None
    remark: str
    attachments: Sequence[Attachment]
    version: int
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """Immutable audit record of one status change or reassignment."""

    id: str
    complaint_id: str
    sequence: int
    action: HistoryAction
    status: ComplaintStatus
    changed_by: str
    notes: str
    timestamp: datetime
    assigned_from: str | None = None
    assigned_to: str | None = None


@dataclass(frozen=True, slots=True)
class Comment:
    """Discussion message on a complaint.

    Internal comments are staff notes and are never shown to the client.
    """

    id: str
    complaint_id: str
    author_id: str
    content: str
    is_internal: bool
    attachments: Sequence[Attachment]
    created_at: datetime


@dataclass(frozen=True, slots=True)
class BulkOutcome:
    complaint_id: str
    ok: bool
    error: str | None = None
    complaint: Complaint | None = None


@dataclass(slots=True)
class ComplaintDraft:
    """Input collected when a complaint is submitted."""

    title: str
    description: str
    error_type: str
    error_screen: str
    nature_type_id: str
    remark: str = ""
    client_id: str | None = None
    department_id: str | None = None
    attachments: Sequence[Attachment] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ComplaintFilters:
    status: ComplaintStatus | None = None
    department_id: str | None = None
    nature_type_id: str | None = None


@dataclass(frozen=True, slots=True)
class ComplaintDetail:
    """Complaint bundled with its ordered history."""

    complaint: Complaint
    history: Sequence[HistoryEntry]

    @property
    def has_history(self) -> bool:
        return len(self.history) > 0


@dataclass(frozen=True, slots=True)
class ComplaintPage:
    items: Sequence[Complaint]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        if self.limit <= 0:
            return 0
        return (self.total + self.limit - 1) // self.limit
