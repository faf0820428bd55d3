from __future__ import annotations

from typing import Any, Mapping, Sequence

from sqlalchemy import delete, func, update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import select

from apps.api.services.database import create_schema, ensure_datetime
from packages.db.models import ComplaintCommentTable, ComplaintHistoryTable, ComplaintTable

from .models import Attachment, Comment, Complaint, ComplaintFilters, HistoryAction, HistoryEntry
from .state import ComplaintStatus


class ComplaintRepository:
    """Persistence helper wrapping `complaints`, `complaint_history` and `complaint_comments`."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine: AsyncEngine | None = engine

    async def ensure_schema(self) -> None:
        if self._engine is None:
            raise RuntimeError("Session factory is not bound to an async engine")
        await create_schema(self._engine)

    async def create_complaint(self, complaint: Complaint) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                session.add(
                    ComplaintTable(
                        id=complaint.id,
                        title=complaint.title,
                        description=complaint.description,
                        error_type=complaint.error_type,
                        error_screen=complaint.error_screen,
                        nature_type_id=complaint.nature_type_id,
                        client_id=complaint.client_id,
                        department_id=complaint.department_id,
                        status=complaint.status.value,
                        current_assignee_id=complaint.current_assignee_id,
                        first_assignee_id=complaint.first_assignee_id,
                        remark=complaint.remark,
                        attachments=[attachment.to_mapping() for attachment in complaint.attachments],
                        version=complaint.version,
                        created_at=complaint.created_at,
                        updated_at=complaint.updated_at,
                    )
                )

    async def get_complaint(self, complaint_id: str) -> Complaint | None:
        async with self._session_factory() as session:
            row = await session.get(ComplaintTable, complaint_id)
            if row is None:
                return None
            return self._table_to_complaint(row)

    async def get_history(self, complaint_id: str) -> list[HistoryEntry]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ComplaintHistoryTable)
                .where(ComplaintHistoryTable.complaint_id == complaint_id)
                .order_by(ComplaintHistoryTable.timestamp.asc(), ComplaintHistoryTable.sequence.asc())
            )
            return [self._table_to_history(row) for row in result.scalars().all()]

    async def list_complaints(
        self,
        *,
        filters: ComplaintFilters,
        client_id: str | None = None,
        assignee_id: str | None = None,
        department_id: str | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Complaint], int]:
        conditions: list[Any] = []
        if filters.status is not None:
            conditions.append(ComplaintTable.status == filters.status.value)
        if filters.department_id is not None:
            conditions.append(ComplaintTable.department_id == filters.department_id)
        if filters.nature_type_id is not None:
            conditions.append(ComplaintTable.nature_type_id == filters.nature_type_id)
        if client_id is not None:
            conditions.append(ComplaintTable.client_id == client_id)
        if assignee_id is not None:
            conditions.append(ComplaintTable.current_assignee_id == assignee_id)
        if department_id is not None:
            conditions.append(ComplaintTable.department_id == department_id)

        async with self._session_factory() as session:
            result = await session.execute(
                select(ComplaintTable)
                .where(*conditions)
                .order_by(ComplaintTable.updated_at.desc())
                .offset(offset)
                .limit(limit)
            )
            items = [self._table_to_complaint(row) for row in result.scalars().all()]
            total = await session.scalar(select(func.count()).select_from(ComplaintTable).where(*conditions))
        return items, int(total or 0)

    async def apply_change(
        self,
        complaint_id: str,
        *,
        expected_version: int,
        changes: Mapping[str, Any],
        entry: HistoryEntry,
    ) -> Complaint | None:
        """Update the complaint and append ``entry`` in a single transaction.

        The update only lands when the stored version still equals
        ``expected_version``; otherwise nothing is written and ``None`` is
        returned.
        """

        values = {key: (value.value if isinstance(value, ComplaintStatus) else value) for key, value in changes.items()}
        values["version"] = expected_version + 1

        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(ComplaintTable)
                    .where(ComplaintTable.id == complaint_id, ComplaintTable.version == expected_version)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    return None
                session.add(
                    ComplaintHistoryTable(
                        id=entry.id,
                        complaint_id=entry.complaint_id,
                        sequence=entry.sequence,
                        action=entry.action.value,
                        status=entry.status.value,
                        assigned_from=entry.assigned_from,
                        assigned_to=entry.assigned_to,
                        changed_by=entry.changed_by,
                        notes=entry.notes,
                        timestamp=entry.timestamp,
                    )
                )
            row = await session.get(ComplaintTable, complaint_id, populate_existing=True)
            if row is None:
                return None
            return self._table_to_complaint(row)

    async def add_comment(self, comment: Comment) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                session.add(
                    ComplaintCommentTable(
                        id=comment.id,
                        complaint_id=comment.complaint_id,
                        author_id=comment.author_id,
                        content=comment.content,
                        is_internal=comment.is_internal,
                        attachments=[attachment.to_mapping() for attachment in comment.attachments],
                        created_at=comment.created_at,
                    )
                )

    async def list_comments(self, complaint_id: str, *, include_internal: bool = True) -> list[Comment]:
        """Comments on a complaint, newest first."""

        statement = select(ComplaintCommentTable).where(ComplaintCommentTable.complaint_id == complaint_id)
        if not include_internal:
            statement = statement.where(ComplaintCommentTable.is_internal.is_(False))
        async with self._session_factory() as session:
            result = await session.execute(statement.order_by(ComplaintCommentTable.created_at.desc()))
            return [self._table_to_comment(row) for row in result.scalars().all()]

    async def delete_complaint(self, complaint_id: str) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(
                    delete(ComplaintCommentTable).where(ComplaintCommentTable.complaint_id == complaint_id)
                )
                await session.execute(
                    delete(ComplaintHistoryTable).where(ComplaintHistoryTable.complaint_id == complaint_id)
                )
                result = await session.execute(delete(ComplaintTable).where(ComplaintTable.id == complaint_id))
            return result.rowcount == 1

    @staticmethod
    def _table_to_complaint(row: ComplaintTable) -> Complaint:
        attachments: Sequence[Mapping[str, Any]] = row.attachments or []
        return Complaint(
            id=row.id,
            title=row.title,
            description=row.description,
            error_type=row.error_type,
            error_screen=row.error_screen,
            nature_type_id=row.nature_type_id,
            client_id=row.client_id,
            department_id=row.department_id,
            status=ComplaintStatus(row.status),
            current_assignee_id=row.current_assignee_id,
            first_assignee_id=row.first_assignee_id,
            remark=row.remark or "",
            attachments=[Attachment.from_mapping(item) for item in attachments],
            version=int(row.version),
            created_at=ensure_datetime(row.created_at),
            updated_at=ensure_datetime(row.updated_at),
        )

    @staticmethod
    def _table_to_history(row: ComplaintHistoryTable) -> HistoryEntry:
        return HistoryEntry(
            id=row.id,
            complaint_id=row.complaint_id,
            sequence=int(row.sequence),
            action=HistoryAction(row.action),
            status=ComplaintStatus(row.status),
            changed_by=row.changed_by,
            notes=row.notes or "",
            timestamp=ensure_datetime(row.timestamp),
            assigned_from=row.assigned_from,
            assigned_to=row.assigned_to,
        )

    @staticmethod
    def _table_to_comment(row: ComplaintCommentTable) -> Comment:
        attachments: Sequence[Mapping[str, Any]] = row.attachments or []
        return Comment(
            id=row.id,
            complaint_id=row.complaint_id,
            author_id=row.author_id,
            content=row.content or "",
            is_internal=bool(row.is_internal),
            attachments=[Attachment.from_mapping(item) for item in attachments],
            created_at=ensure_datetime(row.created_at),
        )
