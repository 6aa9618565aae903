"""
SchoolDesk Backend — Term Route Handlers
==========================================

What:  /api/terms: list, read, current term, create, update, delete, bulk delete.
How:   Each handler follows the same four steps:
         1. Resolve the principal (bearer token) and check the role
         2. Resolve the school scope or partition (403 when foreign)
         3. Call TermService with the request's session
         4. Shape the JSON response and status code
       Errors are raised, never returned; main.py turns them into responses.

Roles:
    Managing terms is reserved to super, management and admin users.
    Reading the current term is open to every role within its own schools,
    because teachers, students and parents all need to know which term it is.
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from schooldesk.auth import ALL_ROLES, STAFF_ROLES, Principal, get_current_principal
from schooldesk.config import settings
from schooldesk.database import get_db_session
from schooldesk.exceptions import ValidationError
from schooldesk.models.term import Partition, TermStatus
from schooldesk.schemas.common import ErrorResponse, MessageResponse
from schooldesk.schemas.term import (
    TermCreate,
    TermListResponse,
    TermResponse,
    TermSummary,
    TermUpdate,
)
from schooldesk.services.authorization import (
    partition_for,
    read_filter,
    require_role,
    require_school_scope,
    scoped_partition,
)
from schooldesk.services.term_service import term_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Terms"])

_ERRORS = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    401: {"description": "Not signed in", "model": ErrorResponse},
    403: {"description": "Role or school not allowed", "model": ErrorResponse},
    404: {"description": "Term not found", "model": ErrorResponse},
}


def _parse_ids(raw_ids: List[str]) -> List[uuid.UUID]:
    if not raw_ids:
        raise ValidationError(message="No IDs provided", field="ids")
    try:
        return [uuid.UUID(raw) for raw in raw_ids]
    except ValueError:
        raise ValidationError(message="Invalid term ID provided", field="ids")


@router.get(
    "/terms",
    response_model=TermListResponse,
    responses=_ERRORS,
    summary="List terms",
)
async def list_terms(
    response: Response,
    status: Optional[TermStatus] = Query(default=None, description="Active or Inactive"),
    session: Optional[str] = Query(default=None, description="Academic session, e.g. 2024/2025"),
    schoolid: Optional[uuid.UUID] = Query(default=None, description="Restrict to one school"),
    page: Optional[int] = Query(default=None, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    minimal: bool = Query(default=False, description="Return id, session, term, status and dates only"),
    principal: Optional[Principal] = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> TermListResponse:
    """
    Super users see every term and may filter by `schoolid`. Everyone else is
    narrowed to their own school; naming another school is 403.
    """
    principal = require_role(principal, STAFF_ROLES)

    if schoolid is not None:
        require_school_scope(principal, schoolid)
        school_ids = [schoolid]
    else:
        school_ids = read_filter(principal)

    if limit is not None:
        limit = min(limit, settings.max_page_size)

    terms, total = await term_service.list_terms(
        db,
        school_ids=school_ids,
        status=status,
        session=session.strip() if session else None,
        page=page,
        limit=limit,
    )
    response.headers["X-Total-Count"] = str(total)
    item_model = TermSummary if minimal else TermResponse
    return TermListResponse(data=[item_model.model_validate(t) for t in terms], total=total)


@router.get(
    "/terms/active",
    response_model=TermResponse,
    responses=_ERRORS,
    summary="Current term of a school",
)
async def get_active_term(
    schoolid: Optional[uuid.UUID] = Query(
        default=None,
        description="School to look up. Defaults to the caller's school; super users get the global term",
    ),
    principal: Optional[Principal] = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> TermResponse:
    principal = require_role(principal, ALL_ROLES)
    partition = partition_for(principal, schoolid)
    term = await term_service.get_active_term(db, partition)
    return TermResponse.model_validate(term)


@router.get(
    "/terms/{term_id}",
    response_model=TermResponse,
    responses=_ERRORS,
    summary="Get a single term",
)
async def get_term(
    term_id: uuid.UUID,
    principal: Optional[Principal] = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> TermResponse:
    principal = require_role(principal, STAFF_ROLES)
    term = await term_service.get_term(db, term_id)
    require_school_scope(principal, term.school_id)
    return TermResponse.model_validate(term)


@router.post(
    "/terms",
    status_code=201,
    response_model=TermResponse,
    responses=_ERRORS,
    summary="Create a term and make it current",
)
async def create_term(
    body: TermCreate,
    principal: Optional[Principal] = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> TermResponse:
    """
    The new term becomes the Active term of its school; the previous Active
    term is switched to Inactive in the same transaction.
    """
    principal = require_role(principal, STAFF_ROLES)
    partition = partition_for(principal, body.school_id)
    term = await term_service.create_term(db, body, partition)
    return TermResponse.model_validate(term)


@router.put(
    "/terms/{term_id}",
    response_model=TermResponse,
    responses=_ERRORS,
    summary="Update a term (partial)",
)
async def update_term(
    term_id: uuid.UUID,
    body: TermUpdate,
    principal: Optional[Principal] = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> TermResponse:
    principal = require_role(principal, STAFF_ROLES)
    term = await term_service.update_term(db, term_id, body, scoped_partition(principal))
    return TermResponse.model_validate(term)


@router.delete(
    "/terms/{term_id}",
    response_model=MessageResponse,
    responses=_ERRORS,
    summary="Delete a term",
)
async def delete_term(
    term_id: uuid.UUID,
    principal: Optional[Principal] = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    principal = require_role(principal, STAFF_ROLES)
    await term_service.delete_term(db, term_id, scoped_partition(principal))
    return MessageResponse(message="Term deleted successfully")


@router.delete(
    "/terms",
    status_code=204,
    response_class=Response,
    responses=_ERRORS,
    summary="Delete several terms",
)
async def bulk_delete_terms(
    ids: List[str] = Query(default=[], description="Repeat for each id: ?ids=a&ids=b"),
    schoolid: Optional[uuid.UUID] = Query(default=None),
    principal: Optional[Principal] = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    """
    Super users may delete across schools (or restrict with `schoolid`);
    everyone else only deletes within their own school.
    """
    principal = require_role(principal, STAFF_ROLES)
    term_ids = _parse_ids(ids)

    if principal.is_super:
        partition = Partition(schoolid) if schoolid is not None else None
    else:
        partition = partition_for(principal, schoolid)

    deleted = await term_service.bulk_delete_terms(db, term_ids, partition)
    logger.info("Principal %s bulk-deleted %d term(s)", principal.id, deleted)
    return Response(status_code=204)
