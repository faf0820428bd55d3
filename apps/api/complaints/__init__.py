"""Complaint lifecycle: status state machine, reassignment and history."""

from .models import (
    Attachment,
    Complaint,
    ComplaintDetail,
    ComplaintDraft,
    ComplaintFilters,
    ComplaintPage,
    HistoryAction,
    HistoryEntry,
)
from .repository import ComplaintRepository
from .service import ComplaintLifecycleService
from .state import ComplaintStateMachine, ComplaintStatus

__all__ = [
    "Attachment",
    "Complaint",
    "ComplaintDetail",
    "ComplaintDraft",
    "ComplaintFilters",
    "ComplaintLifecycleService",
    "ComplaintPage",
    "ComplaintRepository",
    "ComplaintStateMachine",
    "ComplaintStatus",
    "HistoryAction",
    "HistoryEntry",
]
