from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Iterator, Mapping, Sequence

from sqlalchemy.exc import SQLAlchemyError

from apps.api.core.errors import (
    AssigneeNotEligibleError,
    ComplaintNotFoundError,
    ConcurrencyConflictError,
    DepartmentNotFoundError,
    InvalidRequestError,
    InvalidStatusTransitionError,
    NatureTypeNotFoundError,
    PermissionDeniedError,
    ServiceError,
    StorageError,
    UserNotFoundError,
)
from apps.api.core.logging import get_tracer
from apps.api.directory.models import ActorContext, Department, DirectoryUser, Role
from apps.api.directory.repository import DirectoryRepository
from apps.api.metrics import ComplaintMetrics, MetricsRegistry, metrics_registry
from apps.api.services.notifications import (
    NoopNotificationDispatcher,
    NotificationDispatcher,
    NotificationEvent,
    NotificationEventType,
    Stakeholders,
    resolve_recipients,
)

from . import policy
from .models import (
    Attachment,
    BulkAction,
    BulkOutcome,
    Comment,
    Complaint,
    ComplaintDetail,
    ComplaintDraft,
    ComplaintFilters,
    ComplaintPage,
    HistoryAction,
    HistoryEntry,
)
from .repository import ComplaintRepository
from .state import ComplaintStateMachine, ComplaintStatus

logger = logging.getLogger(__name__)

_REQUIRED_DRAFT_FIELDS = ("title", "description", "error_type", "error_screen", "nature_type_id")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ComplaintLifecycleService:
    """Status transitions, reassignment and history for complaints.

    Every mutation is authorized against an explicit :class:`ActorContext`,
    written together with exactly one history entry in one transaction, and
    announced to the notification dispatcher once it has been committed.
    """

    def __init__(
        self,
        repository: ComplaintRepository,
        directory: DirectoryRepository,
        *,
        state_machine: ComplaintStateMachine | None = None,
        notifier: NotificationDispatcher | None = None,
        registry: MetricsRegistry | None = None,
        routing_department_id: str | None = None,
        page_size_limit: int = 100,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._directory = directory
        self._state_machine = state_machine or ComplaintStateMachine()
        self._notifier: NotificationDispatcher = notifier or NoopNotificationDispatcher()
        self._metrics = ComplaintMetrics.register(registry or metrics_registry)
        self._routing_department_id = routing_department_id
        self._page_size_limit = page_size_limit
        self._clock = clock
        self._tracer = get_tracer(__name__)

    @property
    def state_machine(self) -> ComplaintStateMachine:
        return self._state_machine

    # Queries
    async def get_complaint(self, actor: ActorContext, complaint_id: str) -> ComplaintDetail:
        with self._operation("get_complaint", complaint_id):
            complaint = await self._load_visible(actor, complaint_id)
            with self._storage_errors("load complaint history"):
                history = await self._repository.get_history(complaint_id)
            return ComplaintDetail(complaint=complaint, history=history)

    async def get_history(self, actor: ActorContext, complaint_id: str) -> list[HistoryEntry]:
        with self._operation("get_history", complaint_id):
            await self._load_visible(actor, complaint_id)
            with self._storage_errors("load complaint history"):
                return await self._repository.get_history(complaint_id)

    async def list_complaints(
        self,
        actor: ActorContext,
        *,
        filters: ComplaintFilters | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> ComplaintPage:
        if page < 1:
            raise InvalidRequestError("page must be >= 1")
        if not 1 <= limit <= self._page_size_limit:
            raise InvalidRequestError(f"limit must be between 1 and {self._page_size_limit}")

        scope: dict[str, str | None] = {}
        if actor.role is Role.CLIENT:
            scope["client_id"] = actor.user_id
        elif actor.role is Role.EMPLOYEE:
            scope["assignee_id"] = actor.user_id
        elif actor.role is Role.MANAGER:
            if actor.department_id is None:
                return ComplaintPage(items=[], total=0, page=page, limit=limit)
            scope["department_id"] = actor.department_id

        with self._operation("list_complaints"), self._storage_errors("list complaints"):
            items, total = await self._repository.list_complaints(
                filters=filters or ComplaintFilters(),
                offset=(page - 1) * limit,
                limit=limit,
                **scope,
            )
        return ComplaintPage(items=items, total=total, page=page, limit=limit)

    async def eligible_assignees(self, actor: ActorContext, complaint_id: str) -> list[DirectoryUser]:
        """Users ``actor`` may hand the complaint to, current assignee excluded."""

        complaint = await self._load(complaint_id)
        assignee = await self._assignee_of(complaint)
        if not policy.can_reassign(actor, complaint, assignee):
            raise self._rejected("permission", PermissionDeniedError("Not authorized to reassign this complaint"))
        with self._storage_errors("list users"):
            candidates = await self._directory.list_users(active_only=True)
        return [
            user
            for user in candidates
            if user.id != complaint.current_assignee_id and policy.is_eligible_assignee(actor, user)
        ]

    # Mutations
    async def create_complaint(self, actor: ActorContext, draft: ComplaintDraft) -> Complaint:
        with self._operation("create_complaint"):
            missing = [name for name in _REQUIRED_DRAFT_FIELDS if not str(getattr(draft, name) or "").strip()]
            if missing:
                raise self._rejected(
                    "validation", InvalidRequestError(f"Missing required fields: {', '.join(missing)}")
                )

            client_id = await self._resolve_client(actor, draft.client_id)

            with self._storage_errors("load nature type"):
                nature_type = await self._directory.get_nature_type(draft.nature_type_id)
            if nature_type is None:
                raise NatureTypeNotFoundError(f"Nature type {draft.nature_type_id} not found")
            if not nature_type.is_active:
                raise self._rejected("validation", InvalidRequestError(f"Nature type {nature_type.name} is inactive"))

            department = await self._route(actor, draft.department_id)
            assignee_id = await self._routing_assignee(department)

            now = self._clock()
            complaint = Complaint(
                id=str(uuid.uuid4()),
                title=draft.title.strip(),
                description=draft.description.strip(),
                error_type=draft.error_type.strip(),
                error_screen=draft.error_screen.strip(),
                nature_type_id=nature_type.id,
                client_id=client_id,
                department_id=department.id,
                status=self._state_machine.initial_state(),
                current_assignee_id=assignee_id,
                first_assignee_id=assignee_id,
                remark=(draft.remark or "").strip(),
                attachments=list(draft.attachments),
                version=1,
                created_at=now,
                updated_at=now,
            )
            with self._storage_errors("create complaint"):
                await self._repository.create_complaint(complaint)

        logger.info(
            "Complaint %s created by %s in department %s, assigned to %s",
            complaint.id,
            actor.user_id,
            department.id,
            assignee_id,
        )
        await self._notify(
            NotificationEventType.CREATED,
            actor,
            complaint,
            {"title": complaint.title, "department_id": department.id},
        )
        return complaint

    async def change_status(
        self,
        actor: ActorContext,
        complaint_id: str,
        *,
        new_status: ComplaintStatus,
        notes: str | None = None,
        expected_version: int | None = None,
    ) -> Complaint:
        with self._operation("change_status", complaint_id):
            complaint = await self._load(complaint_id)
            assignee = await self._assignee_of(complaint)
            if not policy.can_change_status(actor, complaint, assignee):
                raise self._rejected(
                    "permission", PermissionDeniedError("Not authorized to update this complaint")
                )
            self._check_version(complaint, expected_version)
            try:
                self._state_machine.assert_transition(complaint.status, new_status)
            except InvalidStatusTransitionError as exc:
                self._rejected("transition", exc)
                raise

            now = self._clock()
            entry = self._history_entry(
                complaint,
                action=HistoryAction.STATUS_CHANGED,
                status=new_status,
                actor=actor,
                notes=notes,
                timestamp=now,
            )
            updated = await self._apply(complaint, {"status": new_status, "updated_at": now}, entry)

        self._metrics.transitions.inc(labels={"status": new_status.value})
        logger.info(
            "Complaint %s status %s -> %s by %s",
            complaint_id,
            complaint.status.value,
            new_status.value,
            actor.user_id,
        )
        await self._notify(
            NotificationEventType.STATUS_CHANGED,
            actor,
            updated,
            {"from_status": complaint.status.value, "to_status": new_status.value, "notes": entry.notes},
        )
        return updated

    async def reassign(
        self,
        actor: ActorContext,
        complaint_id: str,
        *,
        user_id: str,
        notes: str | None = None,
        expected_version: int | None = None,
    ) -> Complaint:
        with self._operation("reassign", complaint_id):
            if not user_id:
                raise self._rejected("validation", InvalidRequestError("A target user is required"))
            complaint = await self._load(complaint_id)
            assignee = await self._assignee_of(complaint)
            if not policy.can_reassign(actor, complaint, assignee):
                raise self._rejected(
                    "permission", PermissionDeniedError("Not authorized to reassign this complaint")
                )
            self._check_version(complaint, expected_version)

            with self._storage_errors("load user"):
                target = await self._directory.get_user(user_id)
            if target is None:
                raise UserNotFoundError(f"User {user_id} not found")
            if not policy.is_eligible_assignee(actor, target):
                raise self._rejected(
                    "ineligible", AssigneeNotEligibleError(f"User {user_id} cannot be assigned this complaint")
                )
            if target.id == complaint.current_assignee_id:
                raise self._rejected(
                    "validation", InvalidRequestError(f"Complaint is already assigned to {user_id}")
                )

            now = self._clock()
            changes: dict[str, Any] = {"current_assignee_id": target.id, "updated_at": now}
            if complaint.first_assignee_id is None:
                changes["first_assignee_id"] = target.id
            entry = self._history_entry(
                complaint,
                action=HistoryAction.REASSIGNED,
                status=complaint.status,
                actor=actor,
                notes=notes,
                timestamp=now,
                assigned_from=complaint.current_assignee_id,
                assigned_to=target.id,
            )
            updated = await self._apply(complaint, changes, entry)

        self._metrics.reassignments.inc()
        logger.info(
            "Complaint %s reassigned %s -> %s by %s",
            complaint_id,
            complaint.current_assignee_id,
            target.id,
            actor.user_id,
        )
        await self._notify(
            NotificationEventType.REASSIGNED,
            actor,
            updated,
            {"assigned_from": complaint.current_assignee_id, "assigned_to": target.id, "notes": entry.notes},
        )
        return updated

    async def transfer_department(
        self,
        actor: ActorContext,
        complaint_id: str,
        *,
        department_id: str,
        notes: str | None = None,
        expected_version: int | None = None,
    ) -> Complaint:
        """Move a complaint to another department's default assignee."""

        with self._operation("transfer_department", complaint_id):
            if not policy.can_transfer_department(actor):
                raise self._rejected("permission", PermissionDeniedError("Admin access required"))
            complaint = await self._load(complaint_id)
            self._check_version(complaint, expected_version)

            target = await self._get_department(department_id)
            if not target.is_active:
                raise self._rejected("validation", InvalidRequestError(f"Department {target.name} is inactive"))
            if target.id == complaint.department_id:
                raise self._rejected(
                    "validation", InvalidRequestError(f"Complaint already belongs to {target.name}")
                )
            new_assignee_id = await self._routing_assignee(target)

            with self._storage_errors("load department"):
                source = await self._directory.get_department(complaint.department_id)
            source_name = source.name if source is not None else "unknown department"

            now = self._clock()
            changes: dict[str, Any] = {
                "department_id": target.id,
                "current_assignee_id": new_assignee_id,
                "updated_at": now,
            }
            if complaint.first_assignee_id is None:
                changes["first_assignee_id"] = new_assignee_id
            entry = self._history_entry(
                complaint,
                action=HistoryAction.DEPARTMENT_CHANGED,
                status=complaint.status,
                actor=actor,
                notes=notes or f"Transferred from {source_name} to {target.name}",
                timestamp=now,
                assigned_from=complaint.current_assignee_id,
                assigned_to=new_assignee_id,
            )
            updated = await self._apply(complaint, changes, entry)

        self._metrics.department_transfers.inc()
        logger.info("Complaint %s moved to department %s by %s", complaint_id, target.id, actor.user_id)
        await self._notify(
            NotificationEventType.DEPARTMENT_CHANGED,
            actor,
            updated,
            {"from_department_id": complaint.department_id, "to_department_id": target.id},
        )
        return updated

    async def update_remark(
        self,
        actor: ActorContext,
        complaint_id: str,
        *,
        remark: str,
        expected_version: int | None = None,
    ) -> Complaint:
        with self._operation("update_remark", complaint_id):
            complaint = await self._load(complaint_id)
            assignee = await self._assignee_of(complaint)
            if not policy.can_change_status(actor, complaint, assignee):
                raise self._rejected(
                    "permission", PermissionDeniedError("Not authorized to update this complaint")
                )
            self._check_version(complaint, expected_version)
            cleaned = (remark or "").strip()
            if cleaned == complaint.remark:
                raise self._rejected("validation", InvalidRequestError("Remark is unchanged"))

            now = self._clock()
            entry = self._history_entry(
                complaint,
                action=HistoryAction.REMARK_UPDATED,
                status=complaint.status,
                actor=actor,
                notes=cleaned,
                timestamp=now,
            )
            updated = await self._apply(complaint, {"remark": cleaned, "updated_at": now}, entry)

        logger.info("Complaint %s remark updated by %s", complaint_id, actor.user_id)
        return updated

    async def add_comment(
        self,
        actor: ActorContext,
        complaint_id: str,
        *,
        content: str,
        is_internal: bool = False,
        attachments: Sequence[Attachment] = (),
    ) -> Comment:
        """Post a comment. Anyone who can view the complaint may comment."""

        with self._operation("add_comment", complaint_id):
            complaint = await self._load_visible(actor, complaint_id)
            text = (content or "").strip()
            if not text and not attachments:
                raise self._rejected(
                    "validation", InvalidRequestError("Comment content or attachments are required")
                )
            if is_internal and not policy.can_post_internal(actor):
                raise self._rejected(
                    "permission", PermissionDeniedError("Clients cannot post internal comments")
                )

            comment = Comment(
                id=str(uuid.uuid4()),
                complaint_id=complaint.id,
                author_id=actor.user_id,
                content=text,
                is_internal=is_internal,
                attachments=[
                    item if item.uploaded_by else replace(item, uploaded_by=actor.user_id) for item in attachments
                ],
                created_at=self._clock(),
            )
            with self._storage_errors("add comment"):
                await self._repository.add_comment(comment)

        self._metrics.comments.inc(labels={"visibility": "internal" if is_internal else "public"})
        logger.info("Comment %s added to complaint %s by %s", comment.id, complaint_id, actor.user_id)
        await self._notify(
            NotificationEventType.COMMENT_ADDED,
            actor,
            complaint,
            {"comment_id": comment.id, "is_internal": is_internal, "content": text or "Attachment added"},
            internal=is_internal,
            occurred_at=comment.created_at,
        )
        return comment

    async def list_comments(self, actor: ActorContext, complaint_id: str) -> list[Comment]:
        with self._operation("list_comments", complaint_id):
            await self._load_visible(actor, complaint_id)
            with self._storage_errors("load comments"):
                return await self._repository.list_comments(
                    complaint_id, include_internal=policy.can_post_internal(actor)
                )

    async def bulk_update(
        self,
        actor: ActorContext,
        action: BulkAction,
        complaint_ids: Iterable[str],
        *,
        status: ComplaintStatus | None = None,
        user_id: str | None = None,
        notes: str | None = None,
    ) -> list[BulkOutcome]:
        """Apply one admin action to several complaints.

        Each complaint goes through the single-complaint operation, so every
        change is version checked and writes its own history entry. A
        failure on one complaint is reported in its outcome and does not
        stop the others.
        """

        if not policy.can_bulk_update(actor):
            raise self._rejected("permission", PermissionDeniedError("Admin access required"))
        ids = list(dict.fromkeys(item for item in complaint_ids if item))
        if not ids:
            raise self._rejected("validation", InvalidRequestError("At least one complaint id is required"))
        if len(ids) > self._page_size_limit:
            raise self._rejected(
                "validation", InvalidRequestError(f"At most {self._page_size_limit} complaints per bulk action")
            )
        if action is BulkAction.UPDATE_STATUS and status is None:
            raise self._rejected("validation", InvalidRequestError("New status is required for status update"))
        if action is BulkAction.ASSIGN and not user_id:
            raise self._rejected("validation", InvalidRequestError("Assignee is required for assignment"))

        outcomes: list[BulkOutcome] = []
        for complaint_id in ids:
            try:
                if action is BulkAction.UPDATE_STATUS:
                    complaint = await self.change_status(
                        actor,
                        complaint_id,
                        new_status=status,
                        notes=notes or f"Bulk status update to {status.value}",
                    )
                elif action is BulkAction.ASSIGN:
                    complaint = await self.reassign(
                        actor, complaint_id, user_id=str(user_id), notes=notes or "Bulk assignment"
                    )
                else:
                    await self.delete_complaint(actor, complaint_id)
                    complaint = None
            except ServiceError as exc:
                outcomes.append(BulkOutcome(complaint_id=complaint_id, ok=False, error=str(exc)))
            else:
                outcomes.append(BulkOutcome(complaint_id=complaint_id, ok=True, complaint=complaint))

        failed = sum(1 for outcome in outcomes if not outcome.ok)
        logger.info(
            "Bulk %s by %s: %d succeeded, %d failed", action.value, actor.user_id, len(outcomes) - failed, failed
        )
        return outcomes

    async def delete_complaint(self, actor: ActorContext, complaint_id: str) -> None:
        if not policy.can_delete(actor):
            raise self._rejected("permission", PermissionDeniedError("Admin access required"))
        with self._operation("delete_complaint", complaint_id), self._storage_errors("delete complaint"):
            deleted = await self._repository.delete_complaint(complaint_id)
        if not deleted:
            raise ComplaintNotFoundError(f"Complaint {complaint_id} not found")
        logger.warning("Complaint %s with its history and comments deleted by %s", complaint_id, actor.user_id)

    # Helpers
    @contextmanager
    def _operation(self, name: str, complaint_id: str | None = None) -> Iterator[None]:
        with self._tracer.start_as_current_span(f"complaints.{name}") as span:
            if complaint_id is not None:
                span.set_attribute("complaint.id", complaint_id)
            with self._metrics.operation_duration.time(labels={"operation": name}):
                yield

    @contextmanager
    def _storage_errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.exception("Storage failure while trying to %s", action)
            raise StorageError(f"Could not {action}, please retry") from exc

    def _rejected(self, reason: str, exc: Exception) -> Exception:
        self._metrics.rejections.inc(labels={"reason": reason})
        logger.info("Rejected lifecycle request (%s): %s", reason, exc)
        return exc

    async def _load(self, complaint_id: str) -> Complaint:
        with self._storage_errors("load complaint"):
            complaint = await self._repository.get_complaint(complaint_id)
        if complaint is None:
            raise ComplaintNotFoundError(f"Complaint {complaint_id} not found")
        return complaint

    async def _load_visible(self, actor: ActorContext, complaint_id: str) -> Complaint:
        complaint = await self._load(complaint_id)
        assignee = await self._assignee_of(complaint)
        if not policy.can_view(actor, complaint, assignee):
            raise self._rejected("permission", PermissionDeniedError("Not authorized to view this complaint"))
        return complaint

    async def _assignee_of(self, complaint: Complaint) -> DirectoryUser | None:
        if complaint.current_assignee_id is None:
            return None
        with self._storage_errors("load assignee"):
            return await self._directory.get_user(complaint.current_assignee_id)

    async def _get_department(self, department_id: str) -> Department:
        with self._storage_errors("load department"):
            department = await self._directory.get_department(department_id)
        if department is None:
            raise DepartmentNotFoundError(f"Department {department_id} not found")
        return department

    async def _resolve_client(self, actor: ActorContext, client_id: str | None) -> str:
        target_id = client_id or actor.user_id
        if not policy.can_create_for(actor, target_id):
            raise self._rejected(
                "permission", PermissionDeniedError("Not authorized to create complaints for this client")
            )
        if target_id == actor.user_id and actor.role is Role.CLIENT:
            return target_id
        with self._storage_errors("load client"):
            client = await self._directory.get_user(target_id)
        if client is None:
            raise UserNotFoundError(f"User {target_id} not found")
        if client.role is not Role.CLIENT or not client.is_active:
            raise self._rejected("validation", InvalidRequestError(f"User {target_id} is not an active client"))
        return client.id

    async def _route(self, actor: ActorContext, requested_department_id: str | None) -> Department:
        """Pick the department a new complaint lands in.

        Admins choose freely and managers default to their own department.
        Clients cannot choose: the configured routing department is used,
        falling back to the first active department.
        """

        chosen: str | None = None
        if actor.role is Role.ADMIN:
            chosen = requested_department_id
        elif actor.role is Role.MANAGER:
            chosen = requested_department_id or actor.department_id
        if chosen is not None:
            department = await self._get_department(chosen)
            if not department.is_active:
                raise self._rejected(
                    "validation", InvalidRequestError(f"Department {department.name} is inactive")
                )
            return department

        if self._routing_department_id is not None:
            with self._storage_errors("load department"):
                configured = await self._directory.get_department(self._routing_department_id)
            if configured is not None and configured.is_active:
                return configured
            logger.warning("Routing department %s is unavailable, falling back", self._routing_department_id)

        with self._storage_errors("list departments"):
            active = await self._directory.list_departments(active_only=True)
        if not active:
            raise self._rejected(
                "validation", InvalidRequestError("No active departments available, contact an administrator")
            )
        return active[0]

    async def _routing_assignee(self, department: Department) -> str:
        """First active staff user among the default assignee and the manager."""

        for candidate_id in (department.default_assignee_id, department.manager_id):
            if candidate_id is None:
                continue
            with self._storage_errors("load assignee"):
                candidate = await self._directory.get_user(candidate_id)
            if candidate is not None and candidate.is_active and candidate.is_staff:
                return candidate.id
            logger.warning("Skipping unavailable routing user %s of department %s", candidate_id, department.id)
        raise self._rejected(
            "validation",
            InvalidRequestError(f"No active assignee or manager in department {department.name}"),
        )

    def _check_version(self, complaint: Complaint, expected_version: int | None) -> None:
        if expected_version is not None and expected_version != complaint.version:
            raise self._rejected(
                "conflict",
                ConcurrencyConflictError(
                    f"Complaint {complaint.id} is at version {complaint.version}, not {expected_version}"
                ),
            )

    def _history_entry(
        self,
        complaint: Complaint,
        *,
        action: HistoryAction,
        status: ComplaintStatus,
        actor: ActorContext,
        notes: str | None,
        timestamp: datetime,
        assigned_from: str | None = None,
        assigned_to: str | None = None,
    ) -> HistoryEntry:
        return HistoryEntry(
            id=str(uuid.uuid4()),
            complaint_id=complaint.id,
            sequence=complaint.version + 1,
            action=action,
            status=status,
            changed_by=actor.user_id,
            notes=(notes or "").strip(),
            timestamp=timestamp,
            assigned_from=assigned_from,
            assigned_to=assigned_to,
        )

    async def _apply(self, complaint: Complaint, changes: Mapping[str, Any], entry: HistoryEntry) -> Complaint:
        with self._storage_errors("update complaint"):
            updated = await self._repository.apply_change(
                complaint.id,
                expected_version=complaint.version,
                changes=changes,
                entry=entry,
            )
        if updated is None:
            raise self._rejected(
                "conflict",
                ConcurrencyConflictError(f"Complaint {complaint.id} was modified concurrently, reload and retry"),
            )
        return updated

    async def _stakeholders(self, complaint: Complaint) -> Stakeholders:
        managers = await self._directory.list_users(
            role=Role.MANAGER, department_id=complaint.department_id, active_only=True
        )
        admins = await self._directory.list_users(role=Role.ADMIN, active_only=True)
        manager_ids = [user.id for user in managers]
        department = await self._directory.get_department(complaint.department_id)
        if department is not None and department.manager_id and department.manager_id not in manager_ids:
            manager_ids.insert(0, department.manager_id)
        return Stakeholders(
            client=complaint.client_id,
            assignee=complaint.current_assignee_id,
            managers=manager_ids,
            admins=[user.id for user in admins],
        )

    async def _notify(
        self,
        event_type: NotificationEventType,
        actor: ActorContext,
        complaint: Complaint,
        payload: Mapping[str, Any],
        *,
        internal: bool = False,
        occurred_at: datetime | None = None,
    ) -> None:
        # The change is already committed; delivery problems are only reported.
        try:
            stakeholders = await self._stakeholders(complaint)
            if internal:
                stakeholders = replace(stakeholders, client=None)
            exclude = (actor.user_id,) if event_type is NotificationEventType.COMMENT_ADDED else ()
            event = NotificationEvent(
                event_type=event_type,
                complaint_id=complaint.id,
                actor_id=actor.user_id,
                actor_role=actor.role,
                recipients=resolve_recipients(event_type, actor.role, stakeholders, exclude=exclude),
                occurred_at=occurred_at or complaint.updated_at,
                payload={"status": complaint.status.value, **payload},
            )
            await self._notifier.dispatch(event)
        except Exception:
            self._metrics.notification_failures.inc()
            logger.exception("Notification %s for complaint %s failed", event_type.value, complaint.id)
