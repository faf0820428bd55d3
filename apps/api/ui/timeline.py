"""View model for the complaint history timeline.

The page must tell apart a complaint that has no history yet from one
whose history is still loading or failed to load, so the timeline is
always one of four explicit states.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Sequence

EMPTY_HISTORY_MESSAGE = "No history yet"


class TimelineState(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    EMPTY = "empty"
    ENTRIES = "entries"


@dataclass(frozen=True, slots=True)
class TimelineItem:
    timestamp: str
    title: str
    actor: str
    notes: str


@dataclass(frozen=True, slots=True)
class Timeline:
    state: TimelineState
    message: str = ""
    items: Sequence[TimelineItem] = field(default_factory=tuple)


def _describe(entry: Mapping[str, Any], names: Mapping[str, str]) -> str:
    if entry.get("action") == "reassigned":
        source = names.get(str(entry.get("assigned_from")), entry.get("assigned_from") or "unassigned")
        target = names.get(str(entry.get("assigned_to")), entry.get("assigned_to") or "unassigned")
        return f"Reassigned from {source} to {target}"
    if entry.get("action") == "department_changed":
        return "Moved to another department"
    if entry.get("action") == "remark_updated":
        return "Remark updated"
    return f"Status set to {entry.get('status')}"


def build_timeline(
    history: Sequence[Mapping[str, Any]] | None,
    *,
    error: str | None = None,
    names: Mapping[str, str] | None = None,
) -> Timeline:
    """Turn a fetched history into a timeline, oldest entry first.

    ``history`` is ``None`` while the fetch has not completed.
    """

    if error is not None:
        return Timeline(state=TimelineState.ERROR, message=error)
    if history is None:
        return Timeline(state=TimelineState.LOADING, message="Loading history...")
    if not history:
        return Timeline(state=TimelineState.EMPTY, message=EMPTY_HISTORY_MESSAGE)

    lookup = names or {}
    ordered = sorted(history, key=lambda entry: (str(entry.get("timestamp", "")), int(entry.get("sequence", 0))))
    items = tuple(
        TimelineItem(
            timestamp=str(entry.get("timestamp", "")),
            title=_describe(entry, lookup),
            actor=lookup.get(str(entry.get("changed_by")), str(entry.get("changed_by", ""))),
            notes=str(entry.get("notes") or ""),
        )
        for entry in ordered
    )
    return Timeline(state=TimelineState.ENTRIES, items=items)
