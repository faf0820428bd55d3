import json

import httpx
import pytest

from apps.api.ui.api import APIError, ComplaintDeskClient


def _client(handler) -> ComplaintDeskClient:
    return ComplaintDeskClient(base_url="http://desk.test", token="tok-e2", transport=httpx.MockTransport(handler))


def test_change_status_sends_token_and_payload():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "c-1", "status": "Done"})

    result = _client(handler).change_status("c-1", status="Done", notes="", expected_version=3)

    assert result["status"] == "Done"
    assert seen[0].method == "PATCH"
    assert seen[0].url.path == "/complaints/c-1/status"
    assert seen[0].headers["Authorization"] == "Bearer tok-e2"
    assert json.loads(seen[0].content) == {
        "status": "Done",
        "notes": None,
        "expected_version": 3,
    }


def test_error_detail_is_surfaced_with_status():
    client = _client(lambda request: httpx.Response(409, json={"detail": "Complaint is already Done"}))

    with pytest.raises(APIError) as exc_info:
        client.change_status("c-1", status="Done")

    assert exc_info.value.status_code == 409
    assert str(exc_info.value) == "[409] Complaint is already Done"


def test_validation_errors_use_first_message():
    body = {"detail": [{"loc": ["body", "status"], "msg": "Input should be 'Assigned'", "type": "enum"}]}
    client = _client(lambda request: httpx.Response(422, json=body))

    with pytest.raises(APIError) as exc_info:
        client.reassign("c-1", user_id="")

    assert "Input should be" in str(exc_info.value)


def test_transport_failures_have_no_status():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(APIError) as exc_info:
        _client(handler).get_history("c-1")

    assert exc_info.value.status_code is None


def test_delete_style_empty_bodies_return_none():
    client = _client(lambda request: httpx.Response(204))
    assert client._request("DELETE", "/complaints/c-1") is None


def test_remark_and_comment_calls_hit_their_routes():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "c-1"})

    client = _client(handler)
    client.update_remark("c-1", remark="waiting on logs", expected_version=2)
    client.add_comment("c-1", content="Checking", is_internal=True)

    assert (seen[0].method, seen[0].url.path) == ("PATCH", "/complaints/c-1")
    assert json.loads(seen[0].content) == {"remark": "waiting on logs", "expected_version": 2}
    assert (seen[1].method, seen[1].url.path) == ("POST", "/complaints/c-1/comments")
    assert json.loads(seen[1].content) == {"content": "Checking", "is_internal": True}
