"""Notification dispatch for complaint lifecycle events.

Delivery channels (email, WhatsApp) live outside this service. The desk
only decides who should hear about an event and hands a JSON payload to a
dispatcher; delivery failures never affect the committed complaint state.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Mapping, Protocol, Sequence

import httpx

from apps.api.core.config import Settings
from apps.api.directory.models import Role

logger = logging.getLogger(__name__)


class NotificationEventType(str, Enum):
    CREATED = "created"
    REASSIGNED = "reassigned"
    STATUS_CHANGED = "status_changed"
    DEPARTMENT_CHANGED = "department_changed"
    COMMENT_ADDED = "comment_added"


@dataclass(frozen=True, slots=True)
class Stakeholders:
    """User ids with an interest in a complaint."""

    client: str | None = None
    assignee: str | None = None
    managers: Sequence[str] = ()
    admins: Sequence[str] = ()


@dataclass(frozen=True, slots=True)
class NotificationEvent:
    event_type: NotificationEventType
    complaint_id: str
    actor_id: str
    actor_role: Role
    recipients: Sequence[str]
    occurred_at: datetime
    payload: Mapping[str, Any] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        data = asdict(self)
        data["event_type"] = self.event_type.value
        data["actor_role"] = self.actor_role.value
        data["recipients"] = list(self.recipients)
        data["occurred_at"] = self.occurred_at.isoformat()
        data["payload"] = dict(self.payload)
        return data


def _dedupe(values: Iterable[str | None]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if not value or not value.strip() or value in seen:
            continue
        seen.add(value)
        ordered.append(value)
    return ordered


def resolve_recipients(
    event_type: NotificationEventType,
    actor_role: Role,
    stakeholders: Stakeholders,
    *,
    exclude: Iterable[str] = (),
) -> list[str]:
    """Pick who is told about an event.

    Assignment-type events go to the new assignee and the supervising
    managers and admins. Status changes and comments go to every
    stakeholder group the actor does not belong to. Ids in ``exclude``
    are never notified.
    """

    recipients: list[str | None] = []
    if event_type in (NotificationEventType.STATUS_CHANGED, NotificationEventType.COMMENT_ADDED):
        if actor_role is not Role.CLIENT:
            recipients.append(stakeholders.client)
        if actor_role is not Role.EMPLOYEE:
            recipients.append(stakeholders.assignee)
        if actor_role is not Role.MANAGER:
            recipients.extend(stakeholders.managers)
        if actor_role is not Role.ADMIN:
            recipients.extend(stakeholders.admins)
    else:
        recipients.append(stakeholders.assignee)
        recipients.extend(stakeholders.managers)
        recipients.extend(stakeholders.admins)
    skipped = set(exclude)
    return [recipient for recipient in _dedupe(recipients) if recipient not in skipped]


class NotificationDispatcher(Protocol):
    async def dispatch(self, event: NotificationEvent) -> None:
        ...


class NoopNotificationDispatcher:
    """Dispatcher used when no delivery channel is configured."""

    async def dispatch(self, event: NotificationEvent) -> None:
        logger.debug(
            "Notification %s for complaint %s dropped (no dispatcher configured)",
            event.event_type.value,
            event.complaint_id,
        )


class NotificationDeliveryError(RuntimeError):
    """Raised when the webhook rejects or cannot receive an event."""


class WebhookNotificationDispatcher:
    """POST events as JSON to the delivery gateway."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        token: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._token = token
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def dispatch(self, event: NotificationEvent) -> None:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        client = await self._get_client()
        try:
            response = await client.post(self._url, json=event.to_json(), headers=headers)
        except httpx.HTTPError as exc:
            raise NotificationDeliveryError(f"Notification webhook unreachable: {exc}") from exc
        if response.status_code >= 400:
            raise NotificationDeliveryError(
                f"Notification webhook returned {response.status_code}: {response.text}"
            )
        logger.info(
            "Dispatched %s for complaint %s to %d recipients",
            event.event_type.value,
            event.complaint_id,
            len(event.recipients),
        )

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


def build_notification_dispatcher(settings: Settings) -> NotificationDispatcher:
    if not settings.notifications_webhook_url:
        return NoopNotificationDispatcher()
    return WebhookNotificationDispatcher(
        settings.notifications_webhook_url,
        timeout=settings.notifications_timeout,
        token=settings.notifications_webhook_token,
    )
