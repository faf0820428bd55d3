import pytest

from apps.api.complaints.state import (
    CANONICAL_ORDER,
    SETTABLE_STATUSES,
    ComplaintStateMachine,
    ComplaintStatus,
)
from apps.api.core.errors import InvalidStatusTransitionError, StatusUnchangedError


def test_initial_state_is_new():
    assert ComplaintStateMachine.initial_state() is ComplaintStatus.NEW


def test_status_values_match_wire_names():
    assert [status.value for status in CANONICAL_ORDER] == [
        "New",
        "Assigned",
        "In Progress",
        "Completed",
        "Done",
        "Closed",
    ]
    assert ComplaintStatus.NEW not in SETTABLE_STATUSES
    assert len(SETTABLE_STATUSES) == 5


def test_permissive_machine_allows_jumps_in_both_directions():
    machine = ComplaintStateMachine()
    assert machine.can_transition(ComplaintStatus.NEW, ComplaintStatus.DONE)
    assert machine.can_transition(ComplaintStatus.COMPLETED, ComplaintStatus.IN_PROGRESS)
    assert machine.can_transition(ComplaintStatus.IN_PROGRESS, ComplaintStatus.CLOSED)


def test_permissive_machine_never_targets_new():
    machine = ComplaintStateMachine()
    for status in CANONICAL_ORDER:
        assert not machine.can_transition(status, ComplaintStatus.NEW)
    with pytest.raises(InvalidStatusTransitionError):
        machine.assert_transition(ComplaintStatus.ASSIGNED, ComplaintStatus.NEW)


@pytest.mark.parametrize("strict", [False, True])
def test_closed_is_terminal(strict: bool):
    machine = ComplaintStateMachine(strict_order=strict)
    assert machine.allowed_targets(ComplaintStatus.CLOSED) == frozenset()
    with pytest.raises(InvalidStatusTransitionError):
        machine.assert_transition(ComplaintStatus.CLOSED, ComplaintStatus.IN_PROGRESS)


def test_strict_machine_only_allows_next_status():
    machine = ComplaintStateMachine(strict_order=True)
    machine.assert_transition(ComplaintStatus.NEW, ComplaintStatus.ASSIGNED)
    machine.assert_transition(ComplaintStatus.DONE, ComplaintStatus.CLOSED)
    with pytest.raises(InvalidStatusTransitionError):
        machine.assert_transition(ComplaintStatus.NEW, ComplaintStatus.IN_PROGRESS)
    with pytest.raises(InvalidStatusTransitionError):
        machine.assert_transition(ComplaintStatus.COMPLETED, ComplaintStatus.IN_PROGRESS)


def test_same_status_is_reported_as_unchanged():
    machine = ComplaintStateMachine()
    with pytest.raises(StatusUnchangedError):
        machine.assert_transition(ComplaintStatus.IN_PROGRESS, ComplaintStatus.IN_PROGRESS)


def test_unchanged_is_a_transition_error():
    assert issubclass(StatusUnchangedError, InvalidStatusTransitionError)


def test_custom_transition_table():
    machine = ComplaintStateMachine(
        transitions={ComplaintStatus.NEW: [ComplaintStatus.CLOSED]},
    )
    assert machine.can_transition(ComplaintStatus.NEW, ComplaintStatus.CLOSED)
    assert not machine.can_transition(ComplaintStatus.NEW, ComplaintStatus.ASSIGNED)
    assert machine.allowed_targets(ComplaintStatus.DONE) == frozenset()
