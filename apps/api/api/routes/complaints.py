from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status
from pydantic import AliasChoices, BaseModel, Field

from apps.api.api.errors import to_http_error
from apps.api.complaints.models import (
    Attachment,
    BulkAction,
    BulkOutcome,
    Comment,
    Complaint,
    ComplaintDetail,
    ComplaintDraft,
    ComplaintFilters,
    HistoryAction,
    HistoryEntry,
)
from apps.api.complaints.state import ComplaintStatus
from apps.api.core.errors import ServiceError
from apps.api.dependencies.auth import CurrentActor
from apps.api.dependencies.services import AdminActor, ComplaintServiceDep
from apps.api.directory.models import DirectoryUser, Role

router = APIRouter(prefix="/complaints", tags=["complaints"])


class AttachmentModel(BaseModel):
    filename: str = Field(min_length=1)
    url: str = Field(min_length=1)
    original_name: str = ""
    mime_type: str = ""
    size: int = Field(default=0, ge=0)
    uploaded_by: str | None = None

    @classmethod
    def from_entity(cls, entity: Attachment) -> "AttachmentModel":
        return cls(**entity.to_mapping())

    def to_entity(self) -> Attachment:
        return Attachment(**self.model_dump())


class ComplaintModel(BaseModel):
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
    attachments: list[AttachmentModel]
    version: int
    created_at: str
    updated_at: str

    @classmethod
    def from_entity(cls, entity: Complaint) -> "ComplaintModel":
        return cls(
            id=entity.id,
            title=entity.title,
            description=entity.description,
            error_type=entity.error_type,
            error_screen=entity.error_screen,
            nature_type_id=entity.nature_type_id,
            client_id=entity.client_id,
            department_id=entity.department_id,
            status=entity.status,
            current_assignee_id=entity.current_assignee_id,
            first_assignee_id=entity.first_assignee_id,
            remark=entity.remark,
            attachments=[AttachmentModel.from_entity(item) for item in entity.attachments],
            version=entity.version,
            created_at=entity.created_at.isoformat(),
            updated_at=entity.updated_at.isoformat(),
        )


class HistoryEntryModel(BaseModel):
    id: str
    sequence: int
    action: HistoryAction
    status: ComplaintStatus
    assigned_from: str | None = None
    assigned_to: str | None = None
    changed_by: str
    notes: str
    timestamp: str

    @classmethod
    def from_entity(cls, entity: HistoryEntry) -> "HistoryEntryModel":
        return cls(
            id=entity.id,
            sequence=entity.sequence,
            action=entity.action,
            status=entity.status,
            assigned_from=entity.assigned_from,
            assigned_to=entity.assigned_to,
            changed_by=entity.changed_by,
            notes=entity.notes,
            timestamp=entity.timestamp.isoformat(),
        )


class ComplaintDetailModel(BaseModel):
    complaint: ComplaintModel
    history: list[HistoryEntryModel]
    has_history: bool

    @classmethod
    def from_detail(cls, detail: ComplaintDetail) -> "ComplaintDetailModel":
        return cls(
            complaint=ComplaintModel.from_entity(detail.complaint),
            history=[HistoryEntryModel.from_entity(entry) for entry in detail.history],
            has_history=detail.has_history,
        )


class PaginationModel(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ComplaintListModel(BaseModel):
    complaints: list[ComplaintModel]
    pagination: PaginationModel


class AssigneeModel(BaseModel):
    id: str
    name: str
    email: str
    role: Role
    department_id: str | None

    @classmethod
    def from_entity(cls, entity: DirectoryUser) -> "AssigneeModel":
        return cls(
            id=entity.id,
            name=entity.name,
            email=entity.email,
            role=entity.role,
            department_id=entity.department_id,
        )


class ComplaintCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    error_type: str = Field(min_length=1)
    error_screen: str = Field(min_length=1)
    nature_type_id: str = Field(min_length=1)
    remark: str = ""
    client_id: str | None = None
    department_id: str | None = None
    attachments: list[AttachmentModel] = Field(default_factory=list)


class StatusChangeRequest(BaseModel):
    status: ComplaintStatus
    notes: str | None = Field(default=None, max_length=2000)
    expected_version: int | None = Field(default=None, ge=1)


class ReassignRequest(BaseModel):
    user_id: str = Field(min_length=1, validation_alias=AliasChoices("user_id", "userId"))
    notes: str | None = Field(default=None, max_length=2000)
    expected_version: int | None = Field(default=None, ge=1)


class DepartmentTransferRequest(BaseModel):
    department_id: str = Field(min_length=1)
    notes: str | None = Field(default=None, max_length=2000)
    expected_version: int | None = Field(default=None, ge=1)


class RemarkUpdateRequest(BaseModel):
    remark: str = Field(max_length=2000)
    expected_version: int | None = Field(default=None, ge=1)


class CommentModel(BaseModel):
    id: str
    complaint_id: str
    author_id: str
    content: str
    is_internal: bool
    attachments: list[AttachmentModel]
    created_at: str

    @classmethod
    def from_entity(cls, entity: Comment) -> "CommentModel":
        return cls(
            id=entity.id,
            complaint_id=entity.complaint_id,
            author_id=entity.author_id,
            content=entity.content,
            is_internal=entity.is_internal,
            attachments=[AttachmentModel.from_entity(item) for item in entity.attachments],
            created_at=entity.created_at.isoformat(),
        )


class CommentCreateRequest(BaseModel):
    content: str = Field(default="", max_length=5000)
    is_internal: bool = Field(default=False, validation_alias=AliasChoices("is_internal", "isInternal"))
    attachments: list[AttachmentModel] = Field(default_factory=list)


class BulkActionRequest(BaseModel):
    action: BulkAction
    complaint_ids: list[str] = Field(min_length=1, validation_alias=AliasChoices("complaint_ids", "complaintIds"))
    status: ComplaintStatus | None = Field(default=None, validation_alias=AliasChoices("status", "newStatus"))
    user_id: str | None = Field(default=None, validation_alias=AliasChoices("user_id", "userId", "assigneeId"))
    notes: str | None = Field(default=None, max_length=2000)


class BulkOutcomeModel(BaseModel):
    complaint_id: str
    ok: bool
    error: str | None = None
    complaint: ComplaintModel | None = None

    @classmethod
    def from_entity(cls, entity: BulkOutcome) -> "BulkOutcomeModel":
        return cls(
            complaint_id=entity.complaint_id,
            ok=entity.ok,
            error=entity.error,
            complaint=ComplaintModel.from_entity(entity.complaint) if entity.complaint is not None else None,
        )


class BulkResultModel(BaseModel):
    action: BulkAction
    succeeded: int
    failed: int
    results: list[BulkOutcomeModel]


@router.post("", response_model=ComplaintModel, status_code=status.HTTP_201_CREATED)
async def create_complaint(
    payload: ComplaintCreateRequest,
    service: ComplaintServiceDep,
    actor: CurrentActor,
) -> ComplaintModel:
    draft = ComplaintDraft(
        title=payload.title,
        description=payload.description,
        error_type=payload.error_type,
        error_screen=payload.error_screen,
        nature_type_id=payload.nature_type_id,
        remark=payload.remark,
        client_id=payload.client_id,
        department_id=payload.department_id,
        attachments=[item.to_entity() for item in payload.attachments],
    )
    try:
        complaint = await service.create_complaint(actor, draft)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return ComplaintModel.from_entity(complaint)


@router.get("", response_model=ComplaintListModel, summary="List complaints visible to the caller")
async def list_complaints(
    service: ComplaintServiceDep,
    actor: CurrentActor,
    status_filter: Annotated[ComplaintStatus | None, Query(alias="status")] = None,
    department_id: str | None = None,
    nature_type_id: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1)] = 20,
) -> ComplaintListModel:
    filters = ComplaintFilters(status=status_filter, department_id=department_id, nature_type_id=nature_type_id)
    try:
        result = await service.list_complaints(actor, filters=filters, page=page, limit=limit)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return ComplaintListModel(
        complaints=[ComplaintModel.from_entity(item) for item in result.items],
        pagination=PaginationModel(page=result.page, limit=result.limit, total=result.total, pages=result.pages),
    )


@router.post("/bulk", response_model=BulkResultModel, summary="Apply one admin action to several complaints")
async def bulk_update_complaints(
    payload: BulkActionRequest,
    service: ComplaintServiceDep,
    actor: AdminActor,
) -> BulkResultModel:
    try:
        outcomes = await service.bulk_update(
            actor,
            payload.action,
            payload.complaint_ids,
            status=payload.status,
            user_id=payload.user_id,
            notes=payload.notes,
        )
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    failed = sum(1 for outcome in outcomes if not outcome.ok)
    return BulkResultModel(
        action=payload.action,
        succeeded=len(outcomes) - failed,
        failed=failed,
        results=[BulkOutcomeModel.from_entity(outcome) for outcome in outcomes],
    )


@router.get("/{complaint_id}", response_model=ComplaintDetailModel)
async def get_complaint(
    complaint_id: str,
    service: ComplaintServiceDep,
    actor: CurrentActor,
) -> ComplaintDetailModel:
    try:
        detail = await service.get_complaint(actor, complaint_id)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return ComplaintDetailModel.from_detail(detail)


@router.patch("/{complaint_id}", response_model=ComplaintModel, summary="Update the complaint remark")
async def update_complaint_remark(
    complaint_id: str,
    payload: RemarkUpdateRequest,
    service: ComplaintServiceDep,
    actor: CurrentActor,
) -> ComplaintModel:
    try:
        complaint = await service.update_remark(
            actor, complaint_id, remark=payload.remark, expected_version=payload.expected_version
        )
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return ComplaintModel.from_entity(complaint)


@router.api_route("/{complaint_id}/status", methods=["PATCH", "PUT"], response_model=ComplaintModel)
async def change_complaint_status(
    complaint_id: str,
    payload: StatusChangeRequest,
    service: ComplaintServiceDep,
    actor: CurrentActor,
) -> ComplaintModel:
    try:
        complaint = await service.change_status(
            actor,
            complaint_id,
            new_status=payload.status,
            notes=payload.notes,
            expected_version=payload.expected_version,
        )
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return ComplaintModel.from_entity(complaint)


@router.api_route("/{complaint_id}/assign", methods=["POST", "PATCH"], response_model=ComplaintModel)
async def reassign_complaint(
    complaint_id: str,
    payload: ReassignRequest,
    service: ComplaintServiceDep,
    actor: CurrentActor,
) -> ComplaintModel:
    try:
        complaint = await service.reassign(
            actor,
            complaint_id,
            user_id=payload.user_id,
            notes=payload.notes,
            expected_version=payload.expected_version,
        )
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return ComplaintModel.from_entity(complaint)


@router.post("/{complaint_id}/department", response_model=ComplaintModel)
async def transfer_complaint_department(
    complaint_id: str,
    payload: DepartmentTransferRequest,
    service: ComplaintServiceDep,
    actor: AdminActor,
) -> ComplaintModel:
    try:
        complaint = await service.transfer_department(
            actor,
            complaint_id,
            department_id=payload.department_id,
            notes=payload.notes,
            expected_version=payload.expected_version,
        )
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return ComplaintModel.from_entity(complaint)


@router.get("/{complaint_id}/history", response_model=list[HistoryEntryModel])
async def get_complaint_history(
    complaint_id: str,
    service: ComplaintServiceDep,
    actor: CurrentActor,
) -> list[HistoryEntryModel]:
    try:
        history = await service.get_history(actor, complaint_id)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return [HistoryEntryModel.from_entity(entry) for entry in history]


@router.get("/{complaint_id}/comments", response_model=list[CommentModel])
async def list_complaint_comments(
    complaint_id: str,
    service: ComplaintServiceDep,
    actor: CurrentActor,
) -> list[CommentModel]:
    try:
        comments = await service.list_comments(actor, complaint_id)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return [CommentModel.from_entity(comment) for comment in comments]


@router.post("/{complaint_id}/comments", response_model=CommentModel, status_code=status.HTTP_201_CREATED)
async def add_complaint_comment(
    complaint_id: str,
    payload: CommentCreateRequest,
    service: ComplaintServiceDep,
    actor: CurrentActor,
) -> CommentModel:
    try:
        comment = await service.add_comment(
            actor,
            complaint_id,
            content=payload.content,
            is_internal=payload.is_internal,
            attachments=[item.to_entity() for item in payload.attachments],
        )
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return CommentModel.from_entity(comment)


@router.get("/{complaint_id}/assignees", response_model=list[AssigneeModel])
async def list_eligible_assignees(
    complaint_id: str,
    service: ComplaintServiceDep,
    actor: CurrentActor,
) -> list[AssigneeModel]:
    try:
        users = await service.eligible_assignees(actor, complaint_id)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
    return [AssigneeModel.from_entity(user) for user in users]


@router.delete("/{complaint_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_complaint(
    complaint_id: str,
    service: ComplaintServiceDep,
    actor: AdminActor,
) -> None:
    try:
        await service.delete_complaint(actor, complaint_id)
    except ServiceError as exc:
        raise to_http_error(exc) from exc
