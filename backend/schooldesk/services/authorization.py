"""
SchoolDesk Backend — Authorization Scope
==========================================

What:  One place that answers "may this principal do this, and in which school?"
Who:   Route handlers, and tests that exercise the policy without HTTP.
How:   Two pure decision functions return Allow or Deny(reason). Thin raising
       wrappers convert a Deny into AuthenticationError / AuthorizationError
       for route handlers. Nothing here touches the database.

Scope Rules:
    - Super is global: always allowed, never narrowed.
    - Every other role is bound to its school set (one school; parents also
      get their children's schools). An empty set is always Deny.
"""

import uuid
from dataclasses import dataclass
from typing import AbstractSet, FrozenSet, Optional

from schooldesk.auth import Principal
from schooldesk.exceptions import AuthenticationError, AuthorizationError
from schooldesk.models.term import Partition

CROSS_SCHOOL_DENIED = "cross-school access denied"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def deny(reason: str) -> Decision:
    return Decision(False, reason)


def authorize(principal: Optional[Principal], required_roles: AbstractSet) -> Decision:
    """Deny when there is no principal or its role is not in `required_roles`."""
    if principal is None:
        return deny("authentication required")
    if principal.role not in required_roles:
        return deny(f"role '{principal.role.value}' may not perform this operation")
    return ALLOW


def resolve_school_scope(
    principal: Optional[Principal], target_school_id: Optional[uuid.UUID]
) -> Decision:
    """
    Decide whether `principal` may act on data of `target_school_id`.

    A None target is the global partition; only super users reach it.
    """
    if principal is None:
        return deny("authentication required")
    if principal.is_super:
        return ALLOW
    schools = principal.school_ids
    if not schools or target_school_id is None or target_school_id not in schools:
        return deny(CROSS_SCHOOL_DENIED)
    return ALLOW


def read_filter(principal: Principal) -> Optional[FrozenSet[uuid.UUID]]:
    """
    Schools a read query must be narrowed to. None means "no narrowing".

    Non-super principals without a school get an empty set, so queries
    return nothing rather than everything.
    """
    if principal.is_super:
        return None
    return principal.school_ids


# ── Raising helpers for route handlers ────────────────────────────────────


def require_role(principal: Optional[Principal], required_roles: AbstractSet) -> Principal:
    decision = authorize(principal, required_roles)
    if principal is None:
        raise AuthenticationError()
    if not decision:
        raise AuthorizationError(decision.reason, context={"role": principal.role.value})
    return principal


def require_school_scope(principal: Principal, target_school_id: Optional[uuid.UUID]) -> None:
    decision = resolve_school_scope(principal, target_school_id)
    if not decision:
        raise AuthorizationError(
            decision.reason,
            context={
                "principal_id": principal.id,
                "target_school_id": str(target_school_id) if target_school_id else None,
            },
        )


def partition_for(
    principal: Principal, requested_school_id: Optional[uuid.UUID] = None
) -> Partition:
    """
    Partition a principal writes into or reads the current term of.

    Super users get exactly what they asked for (None = global). Everyone
    else defaults to their own school and is rejected when naming a school
    outside their scope.
    """
    if principal.is_super:
        return Partition(requested_school_id)
    target = requested_school_id if requested_school_id is not None else principal.school_id
    require_school_scope(principal, target)
    return Partition(target)


def scoped_partition(principal: Principal) -> Optional[Partition]:
    """
    Partition that by-id lookups are confined to. None for super users.

    Used by update/delete: a term outside this partition is reported as not
    found, which does not reveal that it exists in another school.
    """
    if principal.is_super:
        return None
    require_school_scope(principal, principal.school_id)
    return Partition(principal.school_id)
