"""SQLModel table definitions for the complaint desk data layer."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


def _uuid_str() -> str:
    """Generate a random UUID string."""

    return str(uuid.uuid4())


class UserTable(SQLModel, table=True):
    """Directory users: admins, managers, employees and clients."""

    __tablename__ = "users"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    name: str = Field(sa_column=Column(String(255), nullable=False))
    email: str = Field(sa_column=Column(String(255), nullable=False, unique=True))
    phone: str | None = Field(default=None, sa_column=Column(String(50), nullable=True))
    role: str = Field(sa_column=Column(String(20), nullable=False, index=True))
    department_id: str | None = Field(
        default=None,
        sa_column=Column(String(36), ForeignKey("departments.id", ondelete="SET NULL"), nullable=True),
    )
    api_token: str | None = Field(default=None, sa_column=Column(String(255), nullable=True, unique=True))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class DepartmentTable(SQLModel, table=True):
    """Routing units owning a manager and a default assignee."""

    __tablename__ = "departments"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    name: str = Field(sa_column=Column(String(255), nullable=False, unique=True))
    description: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    manager_id: str | None = Field(default=None, sa_column=Column(String(36), nullable=True))
    default_assignee_id: str | None = Field(default=None, sa_column=Column(String(36), nullable=True))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class NatureTypeTable(SQLModel, table=True):
    """Categories describing the kind of issue a complaint reports."""

    __tablename__ = "nature_types"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    name: str = Field(sa_column=Column(String(255), nullable=False, unique=True))
    description: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class ComplaintTable(SQLModel, table=True):
    """Complaint records tracked through the resolution workflow."""

    __tablename__ = "complaints"

    id: str = Field(primary_key=True, index=True)
    title: str = Field(sa_column=Column(String(255), nullable=False))
    description: str = Field(sa_column=Column(Text, nullable=False))
    error_type: str = Field(sa_column=Column(String(255), nullable=False))
    error_screen: str = Field(sa_column=Column(String(255), nullable=False))
    nature_type_id: str = Field(sa_column=Column(String(36), nullable=False, index=True))
    client_id: str = Field(sa_column=Column(String(36), nullable=False, index=True))
    department_id: str = Field(sa_column=Column(String(36), nullable=False, index=True))
    status: str = Field(sa_column=Column(String(50), nullable=False, index=True))
    current_assignee_id: str | None = Field(default=None, sa_column=Column(String(36), nullable=True, index=True))
    first_assignee_id: str | None = Field(default=None, sa_column=Column(String(36), nullable=True))
    remark: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    attachments: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    version: int = Field(default=1, sa_column=Column(Integer, nullable=False, default=1))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class ComplaintHistoryTable(SQLModel, table=True):
    """Append-only audit trail, one row per state-changing action."""

    __tablename__ = "complaint_history"
    __table_args__ = (UniqueConstraint("complaint_id", "sequence", name="uq_complaint_history_sequence"),)

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    complaint_id: str = Field(
        sa_column=Column(String(36), ForeignKey("complaints.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    sequence: int = Field(sa_column=Column(Integer, nullable=False))
    action: str = Field(sa_column=Column(String(50), nullable=False))
    status: str = Field(sa_column=Column(String(50), nullable=False))
    assigned_from: str | None = Field(default=None, sa_column=Column(String(36), nullable=True))
    assigned_to: str | None = Field(default=None, sa_column=Column(String(36), nullable=True))
    changed_by: str = Field(sa_column=Column(String(36), nullable=False))
    notes: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    timestamp: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class ComplaintCommentTable(SQLModel, table=True):
    """Comments posted on a complaint by its client or by staff."""

    __tablename__ = "complaint_comments"

    id: str = Field(default_factory=_uuid_str, primary_key=True, index=True)
    complaint_id: str = Field(
        sa_column=Column(String(36), ForeignKey("complaints.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    author_id: str = Field(sa_column=Column(String(36), nullable=False))
    content: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    is_internal: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    attachments: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
