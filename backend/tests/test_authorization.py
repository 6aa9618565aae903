"""
SchoolDesk Backend — Authorization Scope Unit Tests
=====================================================

What:  Tests for the role and school-scope decisions.
How:   Pure functions on Principal values; no database, no HTTP.

What we test:
    ✅ Role gate: allowed roles pass, others are denied, no principal is denied
    ✅ Super users are never narrowed
    ✅ Non-super principals without a school are denied everywhere
    ✅ Parents reach every linked school and nothing else
    ✅ Partition resolution for writes and current-term reads
"""

import uuid

import pytest

from schooldesk.auth import ALL_ROLES, STAFF_ROLES, Principal, Role
from schooldesk.exceptions import AuthenticationError, AuthorizationError
from schooldesk.models.term import GLOBAL_PARTITION, Partition
from schooldesk.services.authorization import (
    CROSS_SCHOOL_DENIED,
    authorize,
    partition_for,
    read_filter,
    require_role,
    require_school_scope,
    resolve_school_scope,
    scoped_partition,
)

SCHOOL_A = uuid.UUID("00000000-0000-0000-0000-00000000000a")
SCHOOL_B = uuid.UUID("00000000-0000-0000-0000-00000000000b")

SUPER = Principal(id="u-super", role=Role.SUPER)
ADMIN_A = Principal(id="u-admin", role=Role.ADMIN, school_id=SCHOOL_A)
TEACHER_A = Principal(id="u-teacher", role=Role.TEACHER, school_id=SCHOOL_A)
ORPHAN_ADMIN = Principal(id="u-orphan", role=Role.ADMIN)
ORPHAN_PARENT = Principal(id="u-orphan-parent", role=Role.PARENT, linked_school_ids=frozenset({SCHOOL_B}))


class TestAuthorize:

    def test_allowed_role_passes(self):
        assert authorize(ADMIN_A, STAFF_ROLES)

    def test_role_outside_set_is_denied_with_reason(self):
        decision = authorize(TEACHER_A, STAFF_ROLES)
        assert not decision
        assert "teacher" in decision.reason

    def test_missing_principal_is_denied(self):
        assert not authorize(None, ALL_ROLES)

    def test_require_role_without_principal_raises_authentication_error(self):
        with pytest.raises(AuthenticationError):
            require_role(None, STAFF_ROLES)

    def test_require_role_with_wrong_role_raises_authorization_error(self):
        with pytest.raises(AuthorizationError):
            require_role(TEACHER_A, STAFF_ROLES)

    def test_require_role_returns_principal(self):
        assert require_role(ADMIN_A, STAFF_ROLES) is ADMIN_A


class TestResolveSchoolScope:

    def test_super_reaches_any_school_and_global(self):
        assert resolve_school_scope(SUPER, SCHOOL_B)
        assert resolve_school_scope(SUPER, None)

    def test_own_school_is_allowed(self):
        assert resolve_school_scope(ADMIN_A, SCHOOL_A)

    def test_foreign_school_is_denied(self):
        decision = resolve_school_scope(ADMIN_A, SCHOOL_B)
        assert not decision
        assert decision.reason == CROSS_SCHOOL_DENIED

    def test_global_partition_is_denied_to_school_staff(self):
        assert not resolve_school_scope(ADMIN_A, None)

    def test_principal_without_school_is_denied_everywhere(self):
        """An empty school set never widens into 'all schools'."""
        assert not resolve_school_scope(ORPHAN_ADMIN, SCHOOL_A)
        assert not resolve_school_scope(ORPHAN_ADMIN, None)

    def test_parent_reaches_every_linked_school(self):
        parent = Principal(
            id="u-parent", role=Role.PARENT, school_id=SCHOOL_A, linked_school_ids=frozenset({SCHOOL_B})
        )
        assert resolve_school_scope(parent, SCHOOL_A)
        assert resolve_school_scope(parent, SCHOOL_B)
        assert not resolve_school_scope(parent, uuid.uuid4())

    def test_linked_schools_are_ignored_for_non_parents(self):
        teacher = Principal(
            id="u-t", role=Role.TEACHER, school_id=SCHOOL_A, linked_school_ids=frozenset({SCHOOL_B})
        )
        assert not resolve_school_scope(teacher, SCHOOL_B)

    def test_parent_without_own_school_is_denied_linked_schools(self):
        """Linked schools only extend a parent who belongs to a school."""
        assert not resolve_school_scope(ORPHAN_PARENT, SCHOOL_B)
        assert not resolve_school_scope(ORPHAN_PARENT, None)

    def test_require_school_scope_raises_on_deny(self):
        with pytest.raises(AuthorizationError) as exc_info:
            require_school_scope(ADMIN_A, SCHOOL_B)
        assert exc_info.value.message == CROSS_SCHOOL_DENIED


class TestReadFilter:

    def test_super_is_not_narrowed(self):
        assert read_filter(SUPER) is None

    def test_staff_is_narrowed_to_own_school(self):
        assert read_filter(ADMIN_A) == frozenset({SCHOOL_A})

    def test_orphan_gets_empty_set_not_none(self):
        assert read_filter(ORPHAN_ADMIN) == frozenset()

    def test_parent_without_own_school_gets_empty_set(self):
        assert read_filter(ORPHAN_PARENT) == frozenset()


class TestPartitionResolution:

    def test_super_without_school_gets_global_partition(self):
        assert partition_for(SUPER) == GLOBAL_PARTITION

    def test_super_gets_requested_school(self):
        assert partition_for(SUPER, SCHOOL_B) == Partition(SCHOOL_B)

    def test_staff_defaults_to_own_school(self):
        assert partition_for(ADMIN_A) == Partition(SCHOOL_A)

    def test_staff_naming_foreign_school_is_denied(self):
        with pytest.raises(AuthorizationError):
            partition_for(ADMIN_A, SCHOOL_B)

    def test_orphan_cannot_fall_back_to_global(self):
        with pytest.raises(AuthorizationError):
            partition_for(ORPHAN_ADMIN)

    def test_scoped_partition(self):
        assert scoped_partition(SUPER) is None
        assert scoped_partition(ADMIN_A) == Partition(SCHOOL_A)
        with pytest.raises(AuthorizationError):
            scoped_partition(ORPHAN_ADMIN)

    def test_partitions_compare_by_value(self):
        assert Partition(None) == GLOBAL_PARTITION
        assert str(GLOBAL_PARTITION) == "global"
        assert str(Partition(SCHOOL_A)) == str(SCHOOL_A)
