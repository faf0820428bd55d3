"""Role and relationship checks for complaint operations.

Every check takes the acting user explicitly as an :class:`ActorContext`.
``assignee`` is the directory record of the complaint's current assignee,
when one exists; it is needed to tell whether a complaint is being worked
inside a manager's team.
"""

from __future__ import annotations

from apps.api.directory.models import ActorContext, DirectoryUser, Role

from .models import Complaint


def _manager_covers(actor: ActorContext, complaint: Complaint, assignee: DirectoryUser | None) -> bool:
    if actor.role is not Role.MANAGER:
        return False
    if complaint.current_assignee_id == actor.user_id:
        return True
    if actor.department_id is None:
        return False
    if complaint.department_id == actor.department_id:
        return True
    return assignee is not None and assignee.department_id == actor.department_id


def _is_current_assignee(actor: ActorContext, complaint: Complaint) -> bool:
    return complaint.current_assignee_id is not None and complaint.current_assignee_id == actor.user_id


def can_view(actor: ActorContext, complaint: Complaint, assignee: DirectoryUser | None = None) -> bool:
    if actor.role is Role.ADMIN:
        return True
    if actor.role is Role.CLIENT:
        return complaint.client_id == actor.user_id
    if actor.role is Role.EMPLOYEE:
        return _is_current_assignee(actor, complaint)
    return _manager_covers(actor, complaint, assignee)


def can_change_status(actor: ActorContext, complaint: Complaint, assignee: DirectoryUser | None = None) -> bool:
    if actor.role is Role.ADMIN:
        return True
    if actor.role is Role.EMPLOYEE:
        return _is_current_assignee(actor, complaint)
    return _manager_covers(actor, complaint, assignee)


def can_reassign(actor: ActorContext, complaint: Complaint, assignee: DirectoryUser | None = None) -> bool:
    if actor.role is Role.ADMIN:
        return True
    return _manager_covers(actor, complaint, assignee)


def is_eligible_assignee(actor: ActorContext, target: DirectoryUser) -> bool:
    """Whether ``actor`` may hand a complaint to ``target``.

    Managers may pick members of their own department, or escalate to the
    manager of another department. Admins may pick any active staff user.
    """

    if not target.is_active or not target.is_staff:
        return False
    if actor.role is Role.ADMIN:
        return True
    if actor.role is not Role.MANAGER:
        return False
    if actor.department_id is not None and target.department_id == actor.department_id:
        return target.role in (Role.EMPLOYEE, Role.MANAGER)
    return target.role is Role.MANAGER


def can_create_for(actor: ActorContext, client_id: str) -> bool:
    if actor.role is Role.CLIENT:
        return client_id == actor.user_id
    return actor.role in (Role.ADMIN, Role.MANAGER)


def can_delete(actor: ActorContext) -> bool:
    return actor.role is Role.ADMIN


def can_transfer_department(actor: ActorContext) -> bool:
    return actor.role is Role.ADMIN


def can_post_internal(actor: ActorContext) -> bool:
    return actor.role is not Role.CLIENT


def can_bulk_update(actor: ActorContext) -> bool:
    return actor.role is Role.ADMIN
