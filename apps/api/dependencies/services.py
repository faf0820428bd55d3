from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from apps.api.complaints.service import ComplaintLifecycleService
from apps.api.dependencies.auth import role_required
from apps.api.directory.models import ActorContext, Role
from apps.api.directory.service import DirectoryService

require_admin = role_required(Role.ADMIN)
require_staff = role_required(Role.ADMIN, Role.MANAGER, Role.EMPLOYEE)

AdminActor = Annotated[ActorContext, Depends(require_admin)]
StaffActor = Annotated[ActorContext, Depends(require_staff)]


async def get_complaint_service(request: Request) -> ComplaintLifecycleService:
    service = getattr(request.app.state, "complaint_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Complaint service is not configured")
    return service


async def get_directory_service(request: Request) -> DirectoryService:
    service = getattr(request.app.state, "directory_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Directory service is not configured")
    return service


ComplaintServiceDep = Annotated[ComplaintLifecycleService, Depends(get_complaint_service)]
DirectoryServiceDep = Annotated[DirectoryService, Depends(get_directory_service)]
