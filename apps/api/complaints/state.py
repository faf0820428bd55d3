from __future__ import annotations

from enum import Enum
from typing import Mapping, Sequence

from apps.api.core.errors import InvalidStatusTransitionError, StatusUnchangedError


class ComplaintStatus(str, Enum):
    """Lifecycle stages of a complaint, in canonical forward order."""

    NEW = "New"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    DONE = "Done"
    CLOSED = "Closed"


CANONICAL_ORDER: tuple[ComplaintStatus, ...] = tuple(ComplaintStatus)

SETTABLE_STATUSES: frozenset[ComplaintStatus] = frozenset(CANONICAL_ORDER[1:])


def _permissive_transitions() -> dict[ComplaintStatus, frozenset[ComplaintStatus]]:
    transitions: dict[ComplaintStatus, frozenset[ComplaintStatus]] = {}
    for status in CANONICAL_ORDER:
        if status is ComplaintStatus.CLOSED:
            transitions[status] = frozenset()
        else:
            transitions[status] = SETTABLE_STATUSES - {status}
    return transitions


def _strict_transitions() -> dict[ComplaintStatus, frozenset[ComplaintStatus]]:
    transitions: dict[ComplaintStatus, frozenset[ComplaintStatus]] = {}
    for current, following in zip(CANONICAL_ORDER, CANONICAL_ORDER[1:]):
        transitions[current] = frozenset({following})
    transitions[ComplaintStatus.CLOSED] = frozenset()
    return transitions


class ComplaintStateMachine:
    """Validate complaint status transitions.

    The default table lets any non-initial status be written from any open
    status, which is how operators actually use the desk. ``strict_order``
    swaps in a table that only allows the next status in canonical order.
    ``Closed`` is terminal in both tables.
    """

    _PERMISSIVE: Mapping[ComplaintStatus, frozenset[ComplaintStatus]] = _permissive_transitions()
    _STRICT: Mapping[ComplaintStatus, frozenset[ComplaintStatus]] = _strict_transitions()

    def __init__(
        self,
        *,
        strict_order: bool = False,
        transitions: Mapping[ComplaintStatus, Sequence[ComplaintStatus]] | None = None,
    ) -> None:
        if transitions is not None:
            self._transitions = {key: frozenset(value) for key, value in transitions.items()}
        else:
            self._transitions = dict(self._STRICT if strict_order else self._PERMISSIVE)
        self.strict_order = strict_order

    @staticmethod
    def initial_state() -> ComplaintStatus:
        return ComplaintStatus.NEW

    def allowed_targets(self, current: ComplaintStatus) -> frozenset[ComplaintStatus]:
        return self._transitions.get(current, frozenset())

    def can_transition(self, current: ComplaintStatus, target: ComplaintStatus) -> bool:
        return target in self.allowed_targets(current)

    def assert_transition(self, current: ComplaintStatus, target: ComplaintStatus) -> None:
        if current == target:
            raise StatusUnchangedError(f"Complaint is already {current.value}")
        if not self.can_transition(current, target):
            raise InvalidStatusTransitionError(
                f"Invalid status transition: {current.value} -> {target.value}"
            )
