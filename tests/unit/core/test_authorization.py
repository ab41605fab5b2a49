"""
Tests for role-based authorization.

Tests:
- Role to permission mapping
- Permission, ownership and participant checks
"""

import pytest

from core.exceptions import Forbidden
from core.middleware.authorization import (
    Identity,
    Permission,
    ROLE_PERMISSIONS,
    has_permission,
    require_participant,
    require_permission,
    require_self_or_permission,
)
from database.models.users import UserRole

ADMIN = Identity(user_id=1, role=UserRole.ADMIN)
HR = Identity(user_id=2, role=UserRole.HR)
CANDIDATE = Identity(user_id=3, role=UserRole.CANDIDATE)


class TestRolePermissions:
    """Test the role to permission table."""

    def test_every_role_mapped(self):
        assert set(ROLE_PERMISSIONS) == set(UserRole)

    @pytest.mark.parametrize("permission", [
        Permission.JOB_CREATE,
        Permission.JOB_CLOSE,
        Permission.RESUME_SHORTLIST,
        Permission.RESUME_REVIEW,
        Permission.INTERVIEW_SCHEDULE,
    ])
    def test_admin_only(self, permission):
        assert has_permission(ADMIN, permission)
        assert not has_permission(HR, permission)
        assert not has_permission(CANDIDATE, permission)

    @pytest.mark.parametrize("permission", [
        Permission.INTERVIEW_CONFIRM,
        Permission.INTERVIEW_FEEDBACK,
        Permission.CANDIDATE_MATCH,
        Permission.RESUME_UPLOAD,
    ])
    def test_staff_permissions(self, permission):
        assert has_permission(ADMIN, permission)
        assert has_permission(HR, permission)
        assert not has_permission(CANDIDATE, permission)

    def test_candidate_permissions(self):
        assert ROLE_PERMISSIONS[UserRole.CANDIDATE] == {
            Permission.JOB_READ,
            Permission.QUERY_CREATE,
        }


class TestChecks:
    """Test the permission guards."""

    def test_require_permission_passes(self):
        require_permission(ADMIN, Permission.JOB_CREATE)

    def test_require_permission_denies(self):
        with pytest.raises(Forbidden) as exc_info:
            require_permission(HR, Permission.JOB_CREATE)

        assert exc_info.value.code == "FORBIDDEN"
        assert exc_info.value.status_code == 403
        assert "job:create" in exc_info.value.message

    def test_self_access_without_permission(self):
        require_self_or_permission(CANDIDATE, 3, Permission.CANDIDATE_READ)

    def test_other_user_needs_permission(self):
        require_self_or_permission(HR, 3, Permission.CANDIDATE_READ)
        with pytest.raises(Forbidden):
            require_self_or_permission(CANDIDATE, 99, Permission.CANDIDATE_READ)

    def test_participant(self):
        require_participant(CANDIDATE, 3, 2)
        with pytest.raises(Forbidden):
            require_participant(ADMIN, 3, 2)

    def test_identity_is_admin(self):
        assert ADMIN.is_admin
        assert not HR.is_admin
