from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import httpx


class APIError(RuntimeError):
    """Error raised when the complaint desk API rejects or cannot serve a call."""

    def __init__(self, message: str, *, status_code: int | None = None, response: httpx.Response | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response

    def __str__(self) -> str:
        prefix = f"[{self.status_code}] " if self.status_code is not None else ""
        return f"{prefix}{super().__str__()}"


def _extract_error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or "Unknown server error"

    if isinstance(data, Mapping):
        detail = data.get("detail")
        if isinstance(detail, str):
            return detail
        if isinstance(detail, list) and detail and isinstance(detail[0], Mapping):
            return str(detail[0].get("msg", "Invalid request"))
    return "The request could not be completed"


@dataclass(slots=True)
class ComplaintDeskClient:
    """Thin synchronous client for the complaint desk API."""

    base_url: str
    token: str | None = None
    timeout: float = 10.0
    transport: httpx.BaseTransport | None = None

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        headers: dict[str, str] = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        headers.update(kwargs.pop("headers", {}))

        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
                response = client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise APIError(f"API request failed: {exc}") from exc

        if response.status_code >= 400:
            raise APIError(_extract_error_message(response), status_code=response.status_code, response=response)
        if response.status_code == 204 or not response.content:
            return None
        if "application/json" in response.headers.get("Content-Type", ""):
            return response.json()
        return response.text

    def ping(self) -> Mapping[str, Any]:
        return self._request("GET", "/ping")

    def me(self) -> Mapping[str, Any]:
        return self._request("GET", "/users/me")

    # Complaints
    def list_complaints(self, *, status: str | None = None, page: int = 1, limit: int = 20) -> Mapping[str, Any]:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if status:
            params["status"] = status
        return self._request("GET", "/complaints", params=params)

    def get_complaint(self, complaint_id: str) -> Mapping[str, Any]:
        return self._request("GET", f"/complaints/{complaint_id}")

    def get_history(self, complaint_id: str) -> list[Mapping[str, Any]]:
        return list(self._request("GET", f"/complaints/{complaint_id}/history") or [])

    def eligible_assignees(self, complaint_id: str) -> list[Mapping[str, Any]]:
        return list(self._request("GET", f"/complaints/{complaint_id}/assignees") or [])

    def change_status(
        self,
        complaint_id: str,
        *,
        status: str,
        notes: str | None = None,
        expected_version: int | None = None,
    ) -> Mapping[str, Any]:
        payload: dict[str, Any] = {"status": status, "notes": notes or None}
        if expected_version is not None:
            payload["expected_version"] = expected_version
        return self._request("PATCH", f"/complaints/{complaint_id}/status", json=payload)

    def reassign(
        self,
        complaint_id: str,
        *,
        user_id: str,
        notes: str | None = None,
        expected_version: int | None = None,
    ) -> Mapping[str, Any]:
        payload: dict[str, Any] = {"user_id": user_id, "notes": notes or None}
        if expected_version is not None:
            payload["expected_version"] = expected_version
        return self._request("POST", f"/complaints/{complaint_id}/assign", json=payload)

    def update_remark(
        self, complaint_id: str, *, remark: str, expected_version: int | None = None
    ) -> Mapping[str, Any]:
        payload: dict[str, Any] = {"remark": remark}
        if expected_version is not None:
            payload["expected_version"] = expected_version
        return self._request("PATCH", f"/complaints/{complaint_id}", json=payload)

    def list_comments(self, complaint_id: str) -> list[Mapping[str, Any]]:
        return list(self._request("GET", f"/complaints/{complaint_id}/comments") or [])

    def add_comment(self, complaint_id: str, *, content: str, is_internal: bool = False) -> Mapping[str, Any]:
        return self._request(
            "POST", f"/complaints/{complaint_id}/comments", json={"content": content, "is_internal": is_internal}
        )
