from dataclasses import replace
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from apps.api.complaints.models import (
    BulkAction,
    BulkOutcome,
    Comment,
    Complaint,
    ComplaintDetail,
    ComplaintPage,
    HistoryAction,
    HistoryEntry,
)
from apps.api.complaints.state import ComplaintStatus
from apps.api.core.config import Settings
from apps.api.core.errors import (
    AssigneeNotEligibleError,
    ComplaintNotFoundError,
    ConcurrencyConflictError,
    PermissionDeniedError,
    StatusUnchangedError,
    StorageError,
)
from apps.api.dependencies import auth as auth_deps
from apps.api.dependencies import services as service_deps
from apps.api.directory.models import ActorContext, Role
from apps.api.main import create_app

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _make_complaint(*, status: ComplaintStatus = ComplaintStatus.NEW, assignee: str = "e1") -> Complaint:
    return Complaint(
        id="c-1",
        title="Login fails",
        description="Cannot log in",
        error_type="auth",
        error_screen="login",
        nature_type_id="n-1",
        client_id="client-1",
        department_id="d-1",
        status=status,
        current_assignee_id=assignee,
        first_assignee_id="e1",
        remark="",
        attachments=[],
        version=2,
        created_at=NOW,
        updated_at=NOW,
    )


def _make_entry() -> HistoryEntry:
    return HistoryEntry(
        id="h-1",
        complaint_id="c-1",
        sequence=2,
        action=HistoryAction.REASSIGNED,
        status=ComplaintStatus.NEW,
        changed_by="m-1",
        notes="",
        timestamp=NOW,
        assigned_from="e1",
        assigned_to="e2",
    )


@pytest.fixture
def complaint_client():
    app = create_app(Settings())
    service = AsyncMock()
    actor = {"value": ActorContext("m-1", Role.MANAGER, "d-1")}

    async def override_service():
        return service

    async def override_actor():
        return actor["value"]

    app.dependency_overrides[service_deps.get_complaint_service] = override_service
    app.dependency_overrides[auth_deps.get_current_actor] = override_actor

    client = TestClient(app)
    try:
        yield client, service, actor
    finally:
        app.dependency_overrides.clear()


def test_get_complaint_includes_history_flag(complaint_client):
    client, service, _ = complaint_client
    service.get_complaint = AsyncMock(return_value=ComplaintDetail(complaint=_make_complaint(), history=[]))

    response = client.get("/complaints/c-1")

    assert response.status_code == 200
    body = response.json()
    assert body["history"] == []
    assert body["has_history"] is False
    assert body["complaint"]["status"] == "New"


def test_history_endpoint_returns_entries(complaint_client):
    client, service, _ = complaint_client
    service.get_history = AsyncMock(return_value=[_make_entry()])

    response = client.get("/complaints/c-1/history")

    assert response.status_code == 200
    assert response.json()[0]["assigned_to"] == "e2"
    assert response.json()[0]["action"] == "reassigned"


@pytest.mark.parametrize("method", ["patch", "put"])
def test_status_update_accepts_patch_and_put(complaint_client, method):
    client, service, actor = complaint_client
    service.change_status = AsyncMock(return_value=_make_complaint(status=ComplaintStatus.IN_PROGRESS))

    response = getattr(client, method)(
        "/complaints/c-1/status", json={"status": "In Progress", "notes": "working on it", "expected_version": 2}
    )

    assert response.status_code == 200
    assert response.json()["status"] == "In Progress"
    service.change_status.assert_awaited_once_with(
        actor["value"],
        "c-1",
        new_status=ComplaintStatus.IN_PROGRESS,
        notes="working on it",
        expected_version=2,
    )


def test_status_update_validates_payload(complaint_client):
    client, service, _ = complaint_client
    service.change_status = AsyncMock()

    response = client.patch("/complaints/c-1/status", json={"status": "Reopened"})

    assert response.status_code == 422
    service.change_status.assert_not_awaited()


@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (ComplaintNotFoundError("Complaint c-1 not found"), 404),
        (PermissionDeniedError("Not authorized"), 403),
        (StatusUnchangedError("Complaint is already New"), 409),
        (ConcurrencyConflictError("stale"), 409),
        (StorageError("Could not update complaint"), 503),
    ],
)
def test_status_errors_map_to_http(complaint_client, error, status_code):
    client, service, _ = complaint_client
    service.change_status = AsyncMock(side_effect=error)

    response = client.patch("/complaints/c-1/status", json={"status": "Done"})

    assert response.status_code == status_code
    assert response.json()["detail"] == str(error)


def test_assign_accepts_camel_case_user_id(complaint_client):
    client, service, actor = complaint_client
    service.reassign = AsyncMock(return_value=_make_complaint(assignee="e2"))

    response = client.post("/complaints/c-1/assign", json={"userId": "e2"})

    assert response.status_code == 200
    assert response.json()["current_assignee_id"] == "e2"
    service.reassign.assert_awaited_once_with(actor["value"], "c-1", user_id="e2", notes=None, expected_version=None)


def test_assign_ineligible_user_is_bad_request(complaint_client):
    client, service, _ = complaint_client
    service.reassign = AsyncMock(side_effect=AssigneeNotEligibleError("User e9 cannot be assigned"))

    response = client.patch("/complaints/c-1/assign", json={"user_id": "e9"})

    assert response.status_code == 400


def test_list_complaints_passes_filters_and_paginates(complaint_client):
    client, service, _ = complaint_client
    service.list_complaints = AsyncMock(
        return_value=ComplaintPage(items=[_make_complaint()], total=3, page=2, limit=1)
    )

    response = client.get("/complaints", params={"status": "New", "page": 2, "limit": 1})

    assert response.status_code == 200
    assert response.json()["pagination"] == {"page": 2, "limit": 1, "total": 3, "pages": 3}
    filters = service.list_complaints.await_args.kwargs["filters"]
    assert filters.status is ComplaintStatus.NEW


def test_create_complaint_returns_created(complaint_client):
    client, service, actor = complaint_client
    actor["value"] = ActorContext("client-1", Role.CLIENT)
    service.create_complaint = AsyncMock(return_value=_make_complaint())

    response = client.post(
        "/complaints",
        json={
            "title": "Login fails",
            "description": "Cannot log in",
            "error_type": "auth",
            "error_screen": "login",
            "nature_type_id": "n-1",
            "attachments": [{"filename": "a.png", "url": "/uploads/a.png"}],
        },
    )

    assert response.status_code == 201
    draft = service.create_complaint.await_args.args[1]
    assert draft.attachments[0].filename == "a.png"


def test_department_transfer_and_delete_require_admin(complaint_client):
    client, service, actor = complaint_client
    service.transfer_department = AsyncMock()
    service.delete_complaint = AsyncMock()

    assert client.post("/complaints/c-1/department", json={"department_id": "d-2"}).status_code == 403
    assert client.delete("/complaints/c-1").status_code == 403

    actor["value"] = ActorContext("admin", Role.ADMIN)
    service.transfer_department = AsyncMock(return_value=_make_complaint())
    assert client.post("/complaints/c-1/department", json={"department_id": "d-2"}).status_code == 200
    assert client.delete("/complaints/c-1").status_code == 204


def test_service_missing_returns_503():
    app = create_app(Settings())

    async def override_actor():
        return ActorContext("admin", Role.ADMIN)

    app.dependency_overrides[auth_deps.get_current_actor] = override_actor
    client = TestClient(app)

    response = client.get("/complaints/c-1")

    assert response.status_code == 503


def test_remark_update_patches_the_complaint(complaint_client):
    client, service, actor = complaint_client
    service.update_remark = AsyncMock(return_value=replace(_make_complaint(), remark="waiting on logs", version=3))

    response = client.patch("/complaints/c-1", json={"remark": "waiting on logs", "expected_version": 2})

    assert response.status_code == 200
    assert response.json()["remark"] == "waiting on logs"
    assert response.json()["version"] == 3
    service.update_remark.assert_awaited_once_with(
        actor["value"], "c-1", remark="waiting on logs", expected_version=2
    )


def test_comments_can_be_posted_and_listed(complaint_client):
    client, service, actor = complaint_client
    comment = Comment(
        id="cm-1",
        complaint_id="c-1",
        author_id="m-1",
        content="Checking the logs",
        is_internal=True,
        attachments=[],
        created_at=NOW,
    )
    service.add_comment = AsyncMock(return_value=comment)
    service.list_comments = AsyncMock(return_value=[comment])

    created = client.post("/complaints/c-1/comments", json={"content": "Checking the logs", "isInternal": True})
    listed = client.get("/complaints/c-1/comments")

    assert created.status_code == 201
    assert created.json()["is_internal"] is True
    service.add_comment.assert_awaited_once_with(
        actor["value"], "c-1", content="Checking the logs", is_internal=True, attachments=[]
    )
    assert listed.status_code == 200
    assert [item["id"] for item in listed.json()] == ["cm-1"]


def test_comment_permission_errors_map_to_forbidden(complaint_client):
    client, service, _ = complaint_client
    service.add_comment = AsyncMock(side_effect=PermissionDeniedError("Clients cannot post internal comments"))

    response = client.post("/complaints/c-1/comments", json={"content": "secret", "is_internal": True})

    assert response.status_code == 403


def test_bulk_requires_admin_and_reports_each_complaint(complaint_client):
    client, service, actor = complaint_client
    service.bulk_update = AsyncMock(
        return_value=[
            BulkOutcome(complaint_id="c-1", ok=True, complaint=_make_complaint(status=ComplaintStatus.DONE)),
            BulkOutcome(complaint_id="c-2", ok=False, error="Complaint c-2 not found"),
        ]
    )
    body = {"action": "updateStatus", "complaintIds": ["c-1", "c-2"], "newStatus": "Done"}

    assert client.post("/complaints/bulk", json=body).status_code == 403
    service.bulk_update.assert_not_awaited()

    actor["value"] = ActorContext("admin", Role.ADMIN)
    response = client.post("/complaints/bulk", json=body)

    assert response.status_code == 200
    payload = response.json()
    assert payload["succeeded"] == 1
    assert payload["failed"] == 1
    assert payload["results"][0]["complaint"]["status"] == "Done"
    assert payload["results"][1]["error"] == "Complaint c-2 not found"
    service.bulk_update.assert_awaited_once_with(
        actor["value"],
        BulkAction.UPDATE_STATUS,
        ["c-1", "c-2"],
        status=ComplaintStatus.DONE,
        user_id=None,
        notes=None,
    )


def test_bulk_rejects_unknown_actions(complaint_client):
    client, service, actor = complaint_client
    actor["value"] = ActorContext("admin", Role.ADMIN)
    service.bulk_update = AsyncMock()

    response = client.post("/complaints/bulk", json={"action": "export", "complaint_ids": ["c-1"]})

    assert response.status_code == 422
    service.bulk_update.assert_not_awaited()
