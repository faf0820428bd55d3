"""User, department and nature type directory."""

from .models import ActorContext, Department, DirectoryUser, NatureType, Role
from .repository import DirectoryRepository
from .service import DirectoryService

__all__ = [
    "ActorContext",
    "Department",
    "DirectoryRepository",
    "DirectoryService",
    "DirectoryUser",
    "NatureType",
    "Role",
]
