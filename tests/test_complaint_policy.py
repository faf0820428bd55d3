from datetime import datetime, timezone

from apps.api.complaints import policy
from apps.api.complaints.models import Complaint
from apps.api.complaints.state import ComplaintStatus
from apps.api.directory.models import ActorContext, DirectoryUser, Role

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _complaint(*, department_id: str = "d-support", assignee_id: str | None = "e1") -> Complaint:
    return Complaint(
        id="c-1",
        title="Login fails",
        description="Cannot log in",
        error_type="auth",
        error_screen="login",
        nature_type_id="n-1",
        client_id="client-1",
        department_id=department_id,
        status=ComplaintStatus.NEW,
        current_assignee_id=assignee_id,
        first_assignee_id=assignee_id,
        remark="",
        attachments=[],
        version=1,
        created_at=NOW,
        updated_at=NOW,
    )


def _user(user_id: str, role: Role, department_id: str | None, *, is_active: bool = True) -> DirectoryUser:
    return DirectoryUser(
        id=user_id,
        name=user_id,
        email=f"{user_id}@example.com",
        role=role,
        department_id=department_id,
        is_active=is_active,
        created_at=NOW,
        updated_at=NOW,
    )


ADMIN = ActorContext("admin", Role.ADMIN)
SUPPORT_MANAGER = ActorContext("m-support", Role.MANAGER, "d-support")
BILLING_MANAGER = ActorContext("m-billing", Role.MANAGER, "d-billing")
E1 = ActorContext("e1", Role.EMPLOYEE, "d-support")
E2 = ActorContext("e2", Role.EMPLOYEE, "d-support")
CLIENT = ActorContext("client-1", Role.CLIENT)


def test_admin_can_do_everything():
    complaint = _complaint()
    assert policy.can_view(ADMIN, complaint)
    assert policy.can_change_status(ADMIN, complaint)
    assert policy.can_reassign(ADMIN, complaint)
    assert policy.can_delete(ADMIN)
    assert policy.can_transfer_department(ADMIN)


def test_employee_limited_to_own_assignments():
    complaint = _complaint()
    assert policy.can_change_status(E1, complaint)
    assert not policy.can_change_status(E2, complaint)
    assert not policy.can_view(E2, complaint)
    assert not policy.can_reassign(E1, complaint)


def test_manager_covers_department_and_team_assignees():
    foreign = _complaint(department_id="d-billing", assignee_id="e1")
    assignee = _user("e1", Role.EMPLOYEE, "d-support")

    assert policy.can_change_status(SUPPORT_MANAGER, _complaint())
    assert policy.can_change_status(SUPPORT_MANAGER, foreign, assignee)
    assert not policy.can_change_status(SUPPORT_MANAGER, foreign, _user("e9", Role.EMPLOYEE, "d-billing"))
    assert not policy.can_reassign(BILLING_MANAGER, _complaint(), assignee)


def test_manager_holding_complaint_can_act_on_it():
    complaint = _complaint(department_id="d-support", assignee_id="m-billing")
    assert policy.can_reassign(BILLING_MANAGER, complaint)


def test_client_sees_only_own_complaints_and_never_mutates():
    complaint = _complaint()
    assert policy.can_view(CLIENT, complaint)
    assert not policy.can_view(ActorContext("client-2", Role.CLIENT), complaint)
    assert not policy.can_change_status(CLIENT, complaint)
    assert not policy.can_reassign(CLIENT, complaint)


def test_assignee_eligibility():
    assert policy.is_eligible_assignee(SUPPORT_MANAGER, _user("e2", Role.EMPLOYEE, "d-support"))
    assert policy.is_eligible_assignee(SUPPORT_MANAGER, _user("m-billing", Role.MANAGER, "d-billing"))
    assert not policy.is_eligible_assignee(SUPPORT_MANAGER, _user("e9", Role.EMPLOYEE, "d-billing"))
    assert not policy.is_eligible_assignee(SUPPORT_MANAGER, _user("e3", Role.EMPLOYEE, "d-support", is_active=False))
    assert not policy.is_eligible_assignee(ADMIN, _user("client-9", Role.CLIENT, None))
    assert policy.is_eligible_assignee(ADMIN, _user("e9", Role.EMPLOYEE, "d-billing"))
    assert not policy.is_eligible_assignee(E1, _user("e2", Role.EMPLOYEE, "d-support"))


def test_create_for_other_clients_requires_staff_role():
    assert policy.can_create_for(CLIENT, "client-1")
    assert not policy.can_create_for(CLIENT, "client-2")
    assert policy.can_create_for(SUPPORT_MANAGER, "client-2")
    assert not policy.can_create_for(E1, "client-2")
