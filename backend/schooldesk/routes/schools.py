"""
SchoolDesk Backend — School Route Handlers
============================================

What:  /api/schools: list, read, create, update, delete, bulk delete.
Who:   The super dashboard (all schools) and school dashboards (own school).
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from schooldesk.auth import ALL_ROLES, STAFF_ROLES, Principal, Role, get_current_principal
from schooldesk.database import get_db_session
from schooldesk.exceptions import ValidationError
from schooldesk.schemas.common import ErrorResponse, MessageResponse
from schooldesk.schemas.school import (
    SchoolCreate,
    SchoolListResponse,
    SchoolResponse,
    SchoolUpdate,
)
from schooldesk.services.authorization import read_filter, require_role, require_school_scope
from schooldesk.services.school_service import school_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Schools"])

_ERRORS = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    401: {"description": "Not signed in", "model": ErrorResponse},
    403: {"description": "Role or school not allowed", "model": ErrorResponse},
    404: {"description": "School not found", "model": ErrorResponse},
}


@router.get("/schools", response_model=SchoolListResponse, responses=_ERRORS, summary="List schools")
async def list_schools(
    response: Response,
    principal: Optional[Principal] = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> SchoolListResponse:
    """Super users see every school; everyone else sees the schools they belong to."""
    principal = require_role(principal, ALL_ROLES)
    schools, total = await school_service.list_schools(db, read_filter(principal))
    response.headers["X-Total-Count"] = str(total)
    return SchoolListResponse(data=[SchoolResponse.model_validate(s) for s in schools], total=total)


@router.get("/schools/{school_id}", response_model=SchoolResponse, responses=_ERRORS, summary="Get a school")
async def get_school(
    school_id: uuid.UUID,
    principal: Optional[Principal] = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> SchoolResponse:
    principal = require_role(principal, ALL_ROLES)
    require_school_scope(principal, school_id)
    school = await school_service.get_school(db, school_id)
    return SchoolResponse.model_validate(school)


@router.post(
    "/schools",
    status_code=201,
    response_model=SchoolResponse,
    responses=_ERRORS,
    summary="Register a school",
)
async def create_school(
    body: SchoolCreate,
    principal: Optional[Principal] = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> SchoolResponse:
    require_role(principal, {Role.SUPER, Role.MANAGEMENT})
    school = await school_service.create_school(db, body)
    return SchoolResponse.model_validate(school)


@router.put(
    "/schools/{school_id}",
    response_model=SchoolResponse,
    responses=_ERRORS,
    summary="Update a school (partial)",
)
async def update_school(
    school_id: uuid.UUID,
    body: SchoolUpdate,
    principal: Optional[Principal] = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> SchoolResponse:
    """Admins edit their own school only; super users edit any."""
    principal = require_role(principal, {Role.SUPER, Role.ADMIN})
    require_school_scope(principal, school_id)
    school = await school_service.update_school(db, school_id, body)
    return SchoolResponse.model_validate(school)


@router.delete(
    "/schools/{school_id}",
    response_model=MessageResponse,
    responses=_ERRORS,
    summary="Delete a school and its terms",
)
async def delete_school(
    school_id: uuid.UUID,
    principal: Optional[Principal] = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    principal = require_role(principal, STAFF_ROLES)
    require_school_scope(principal, school_id)
    await school_service.delete_school(db, school_id)
    logger.info("Principal %s deleted school %s", principal.id, school_id)
    return MessageResponse(message="School deleted successfully")


@router.delete(
    "/schools",
    status_code=204,
    response_class=Response,
    responses=_ERRORS,
    summary="Delete schools and their terms",
)
async def bulk_delete_schools(
    ids: List[str] = Query(default=[], description="Repeat for each id: ?ids=a&ids=b"),
    principal: Optional[Principal] = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    principal = require_role(principal, {Role.SUPER})
    try:
        school_ids = [uuid.UUID(raw) for raw in ids]
    except ValueError:
        raise ValidationError(message="Valid school ID(s) are required", field="ids")
    deleted = await school_service.bulk_delete_schools(db, school_ids)
    logger.info("Principal %s deleted %d school(s)", principal.id, deleted)
    return Response(status_code=204)
