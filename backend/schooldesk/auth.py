"""
SchoolDesk Backend — Principal Resolution
===========================================

What:  Turns the `Authorization: Bearer <token>` header into a Principal.
Why:   Every route needs to know who is calling, in which role, for which
       school. Resolving it in one dependency keeps handlers free of JWT code.
How:   HS256 JSON Web Tokens signed with settings.jwt_secret (PyJWT).

Token Claims:
    sub         Principal id
    role        super | management | admin | teacher | student | parent
    school_id   Owning school (absent for super users)
    school_ids  Parents only: schools of their children
    exp         Expiry (set by create_access_token)

Missing header → the dependency yields None and the authorization layer
answers 401. A present but unusable token is rejected immediately with 401.
"""

import enum
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import FrozenSet, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from schooldesk.config import settings
from schooldesk.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class Role(str, enum.Enum):
    SUPER = "super"
    MANAGEMENT = "management"
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"
    PARENT = "parent"


# Roles that administer a school (terms, school records)
STAFF_ROLES = frozenset({Role.SUPER, Role.MANAGEMENT, Role.ADMIN})
ALL_ROLES = frozenset(Role)


@dataclass(frozen=True)
class Principal:
    """
    The authenticated actor of a request.

    Immutable and free of I/O, so authorization checks on it are pure.
    """

    id: str
    role: Role
    school_id: Optional[uuid.UUID] = None
    linked_school_ids: FrozenSet[uuid.UUID] = field(default_factory=frozenset)

    @property
    def is_super(self) -> bool:
        return self.role == Role.SUPER

    @property
    def school_ids(self) -> FrozenSet[uuid.UUID]:
        """
        Every school this principal may see. Empty for super users.

        Without an own school the set is empty for every role: a parent's
        linked schools only count on top of the school they belong to.
        """
        if self.is_super or self.school_id is None:
            return frozenset()
        ids = {self.school_id}
        if self.role == Role.PARENT:
            ids.update(self.linked_school_ids)
        return frozenset(ids)


def create_access_token(principal: Principal, expires_minutes: Optional[int] = None) -> str:
    """Issue a signed session token for `principal`."""
    ttl = expires_minutes if expires_minutes is not None else settings.access_token_ttl_minutes
    payload = {
        "sub": principal.id,
        "role": principal.role.value,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=ttl),
    }
    if principal.school_id is not None:
        payload["school_id"] = str(principal.school_id)
    if principal.linked_school_ids:
        payload["school_ids"] = sorted(str(s) for s in principal.linked_school_ids)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def _parse_uuid(value, claim: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise AuthenticationError("Invalid session token", context={"claim": claim})


def decode_access_token(token: str) -> Principal:
    """
    Verify a token and build the Principal it describes.

    Raises:
        AuthenticationError: expired, badly signed, or missing required claims.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Session expired. Please sign in again.")
    except jwt.InvalidTokenError as e:
        raise AuthenticationError("Invalid session token", context={"reason": type(e).__name__})

    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError("Invalid session token", context={"claim": "sub"})

    try:
        role = Role(str(payload.get("role", "")).lower())
    except ValueError:
        raise AuthenticationError("Invalid session token", context={"claim": "role"})

    school_id = None
    if payload.get("school_id") and role != Role.SUPER:
        school_id = _parse_uuid(payload["school_id"], "school_id")

    linked = frozenset()
    if role == Role.PARENT:
        raw_linked = payload.get("school_ids") or []
        if not isinstance(raw_linked, list):
            raise AuthenticationError("Invalid session token", context={"claim": "school_ids"})
        linked = frozenset(_parse_uuid(s, "school_ids") for s in raw_linked)

    return Principal(id=str(subject), role=role, school_id=school_id, linked_school_ids=linked)


async def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Principal]:
    """
    FastAPI dependency resolving the calling principal, or None without a token.

    The principal's role is stored on request.state for the access log.
    """
    if credentials is None:
        return None
    principal = decode_access_token(credentials.credentials)
    request.state.principal_role = principal.role.value
    return principal
