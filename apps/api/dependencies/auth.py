import logging
from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError

from apps.api.api.errors import to_http_error
from apps.api.core.errors import StorageError
from apps.api.directory.models import ActorContext, Role
from apps.api.directory.repository import DirectoryRepository

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_directory_repository(request: Request) -> DirectoryRepository:
    repository = getattr(request.app.state, "directory_repository", None)
    if repository is None:
        raise HTTPException(status_code=503, detail="Directory is not configured")
    return repository


async def resolve_actor(token: str | None, directory: DirectoryRepository) -> ActorContext:
    """Map a bearer token to the acting user.

    Tokens are issued per user and stored in the directory; only active
    users may act.
    """

    if not token:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        user = await directory.get_user_by_token(token)
    except SQLAlchemyError as exc:
        logger.exception("Storage failure while resolving a bearer token")
        raise to_http_error(StorageError("Could not verify credentials, please retry")) from exc
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=401,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return ActorContext.from_user(user)


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    request: Request,
    directory: Annotated[DirectoryRepository, Depends(get_directory_repository)],
) -> ActorContext:
    cached = getattr(request.state, "actor", None)
    if isinstance(cached, ActorContext):
        return cached

    token = credentials.credentials if credentials is not None else None
    actor = await resolve_actor(token, directory)
    request.state.actor = actor
    return actor


def role_required(*roles: Role) -> Callable[..., Awaitable[ActorContext]]:
    """Dependency factory ensuring the current actor holds one of ``roles``."""

    allowed = frozenset(roles)

    async def dependency(actor: Annotated[ActorContext, Depends(get_current_actor)]) -> ActorContext:
        if actor.role not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return actor

    return dependency


CurrentActor = Annotated[ActorContext, Depends(get_current_actor)]
