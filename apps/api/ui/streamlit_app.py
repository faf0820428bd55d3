from __future__ import annotations

import os
from typing import Any, Callable, Mapping

import streamlit as st

from apps.api.complaints.state import CANONICAL_ORDER
from apps.api.ui.api import APIError, ComplaintDeskClient
from apps.api.ui.timeline import Timeline, TimelineState, build_timeline

DEFAULT_BASE_URL = os.getenv("COMPLAINT_DESK_API_BASE_URL", "http://localhost:8000")


def _build_client() -> ComplaintDeskClient:
    base_url = st.session_state.get("base_url") or DEFAULT_BASE_URL
    token = st.session_state.get("token") or None
    return ComplaintDeskClient(base_url=str(base_url), token=token)


def _render_sidebar(client: ComplaintDeskClient) -> Mapping[str, Any] | None:
    st.sidebar.header("Connection")
    st.sidebar.text_input("API base URL", value=DEFAULT_BASE_URL, key="base_url")
    st.sidebar.text_input("API token", type="password", key="token")

    if not client.token:
        st.sidebar.info("Enter your API token to sign in")
        return None
    success, profile = _handle_api_call(client.me)
    if not success or not isinstance(profile, Mapping):
        return None
    st.sidebar.markdown(f"**Signed in as:** {profile.get('name')} ({profile.get('role')})")
    return profile


def _handle_api_call(
    callback: Callable[[], object], success_message: str | None = None
) -> tuple[bool, object | None]:
    try:
        result = callback()
    except APIError as exc:
        st.error(str(exc))
        return False, None
    else:
        if success_message:
            st.success(success_message)
        return True, result


def _load_detail(client: ComplaintDeskClient, complaint_id: str) -> None:
    st.session_state["selected_id"] = complaint_id
    try:
        st.session_state["selected_detail"] = client.get_complaint(complaint_id)
        st.session_state["detail_error"] = None
    except APIError as exc:
        st.session_state["selected_detail"] = None
        st.session_state["detail_error"] = str(exc)


def _render_timeline(timeline: Timeline, client: ComplaintDeskClient, complaint_id: str) -> None:
    if timeline.state is TimelineState.LOADING:
        st.caption(timeline.message)
    elif timeline.state is TimelineState.ERROR:
        st.error(timeline.message)
        if st.button("Retry", key="retry_history"):
            _load_detail(client, complaint_id)
            st.rerun()
    elif timeline.state is TimelineState.EMPTY:
        st.info(timeline.message)
    else:
        for item in timeline.items:
            st.markdown(f"**{item.title}** by {item.actor} ({item.timestamp})")
            if item.notes:
                st.caption(item.notes)


def _render_list(client: ComplaintDeskClient) -> None:
    st.markdown("### Complaints")
    status_filter = st.selectbox("Status", options=["", *[status.value for status in CANONICAL_ORDER]])
    if st.button("Refresh"):
        success, result = _handle_api_call(lambda: client.list_complaints(status=status_filter or None))
        if success and isinstance(result, Mapping):
            st.session_state["complaint_list"] = result.get("complaints", [])
    complaints = st.session_state.get("complaint_list")
    if complaints:
        st.table(
            [
                {"id": item["id"], "title": item["title"], "status": item["status"], "updated": item["updated_at"]}
                for item in complaints
            ]
        )
    elif complaints == []:
        st.caption("No complaints match the filter")


def _render_comments(client: ComplaintDeskClient, profile: Mapping[str, Any], complaint_id: str) -> None:
    st.markdown("#### Comments")
    success, comments = _handle_api_call(lambda: client.list_comments(complaint_id))
    if success and not comments:
        st.caption("No comments yet")
    for comment in comments or []:
        label = " (internal)" if comment.get("is_internal") else ""
        st.markdown(f"**{comment['author_id']}**{label} ({comment['created_at']})")
        st.write(comment["content"])

    with st.form("comment_form"):
        content = st.text_area("New comment", height=80)
        is_internal = False
        if profile.get("role") != "client":
            is_internal = st.checkbox("Internal note")
        comment_submit = st.form_submit_button("Post comment")
    if comment_submit:
        _handle_api_call(
            lambda: client.add_comment(complaint_id, content=content, is_internal=is_internal), "Comment posted"
        )


def _render_detail(client: ComplaintDeskClient, profile: Mapping[str, Any]) -> None:
    st.markdown("### Complaint details")
    lookup_id = st.text_input("Complaint ID", value=st.session_state.get("selected_id", ""))
    if st.button("Open") and lookup_id.strip():
        _load_detail(client, lookup_id.strip())

    complaint_id = st.session_state.get("selected_id")
    if not complaint_id:
        st.caption("Open a complaint to see its timeline")
        return

    detail = st.session_state.get("selected_detail")
    error = st.session_state.get("detail_error")
    if not isinstance(detail, Mapping):
        _render_timeline(build_timeline(None, error=error), client, complaint_id)
        return

    complaint = detail["complaint"]
    st.markdown(f"#### {complaint['title']} ({complaint['status']})")
    cols = st.columns(3)
    cols[0].metric("Status", complaint["status"])
    cols[1].metric("Assignee", complaint.get("current_assignee_id") or "-")
    cols[2].metric("Version", complaint["version"])
    st.write(complaint["description"])

    st.markdown("#### Timeline")
    _render_timeline(build_timeline(detail.get("history", [])), client, complaint_id)

    _render_comments(client, profile, complaint_id)

    if profile.get("role") == "client":
        return

    st.markdown("#### Remark")
    with st.form("remark_form"):
        remark = st.text_area("Remark", value=complaint.get("remark", ""), height=80)
        remark_submit = st.form_submit_button("Save remark")
    if remark_submit:
        success, _ = _handle_api_call(
            lambda: client.update_remark(complaint_id, remark=remark, expected_version=complaint["version"]),
            "Remark saved",
        )
        if success:
            _load_detail(client, complaint_id)

    st.markdown("#### Update status")
    with st.form("status_form"):
        new_status = st.selectbox("New status", options=[status.value for status in CANONICAL_ORDER[1:]])
        notes = st.text_area("Notes", height=80)
        status_submit = st.form_submit_button("Update status")
    if status_submit:
        success, _ = _handle_api_call(
            lambda: client.change_status(
                complaint_id, status=new_status, notes=notes, expected_version=complaint["version"]
            ),
            "Status updated",
        )
        if success:
            _load_detail(client, complaint_id)

    if profile.get("role") not in {"admin", "manager"}:
        return

    st.markdown("#### Reassign")
    success, candidates = _handle_api_call(lambda: client.eligible_assignees(complaint_id))
    if not success:
        if st.button("Retry", key="retry_assignees"):
            st.rerun()
        return
    if not candidates:
        st.caption("No eligible assignees")
        return
    labels = {f"{user['name']} ({user['role']})": user["id"] for user in candidates}
    with st.form("reassign_form"):
        choice = st.selectbox("Assign to", options=list(labels))
        reassign_notes = st.text_area("Notes", height=80, key="reassign_notes")
        reassign_submit = st.form_submit_button("Reassign")
    if reassign_submit:
        success, _ = _handle_api_call(
            lambda: client.reassign(
                complaint_id, user_id=labels[choice], notes=reassign_notes, expected_version=complaint["version"]
            ),
            "Complaint reassigned",
        )
        if success:
            _load_detail(client, complaint_id)


def main() -> None:
    st.set_page_config(page_title="Complaint Desk", layout="wide")
    client = _build_client()
    profile = _render_sidebar(client)
    if profile is None:
        st.info("Sign in to work with complaints")
        return

    list_tab, detail_tab = st.tabs(["Complaints", "Details"])
    with list_tab:
        _render_list(client)
    with detail_tab:
        _render_detail(client, profile)


if __name__ == "__main__":
    main()
