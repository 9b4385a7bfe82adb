"""
Unit Tests for role-based permission rules

Run with: pytest backend/tests/test_permissions.py -v
"""

import uuid

import pytest

from qclab.core.permissions import (
    can_access_finance,
    can_access_lab,
    can_manage_laboratory,
    can_manage_positions,
    can_manage_shelves,
    is_admin,
)
from qclab.models.enums import QCRole

from conftest import make_ctx

LAB = uuid.uuid4()
OTHER_LAB = uuid.uuid4()


class TestLabAccess:

    @pytest.mark.parametrize("role", [
        QCRole.GLOBAL_ADMIN,
        QCRole.GLOBAL_QUALITY_ADMIN,
        QCRole.GLOBAL_FINANCE_ADMIN,
        QCRole.SANTOS_HQ_FINANCE,
    ])
    def test_global_roles_see_every_lab(self, role):
        assert can_access_lab(make_ctx(role), OTHER_LAB)

    def test_lab_role_sees_own_lab_only(self):
        ctx = make_ctx(QCRole.LAB_ASSISTANT, laboratory_id=LAB)
        assert can_access_lab(ctx, LAB)
        assert not can_access_lab(ctx, OTHER_LAB)

    def test_global_admin_flag_overrides_role(self):
        ctx = make_ctx(QCRole.LAB_PERSONNEL, is_global_admin=True)
        assert can_access_lab(ctx, OTHER_LAB)
        assert is_admin(ctx)


class TestShelfManagement:

    def test_quality_manager_in_own_lab(self):
        ctx = make_ctx(QCRole.LAB_QUALITY_MANAGER, laboratory_id=LAB)
        assert can_manage_shelves(ctx, LAB)
        assert not can_manage_shelves(ctx, OTHER_LAB)

    def test_assistant_cannot_manage_shelves(self):
        ctx = make_ctx(QCRole.LAB_ASSISTANT, laboratory_id=LAB)
        assert not can_manage_shelves(ctx, LAB)

    def test_assistant_can_manage_positions(self):
        ctx = make_ctx(QCRole.LAB_ASSISTANT, laboratory_id=LAB)
        assert can_manage_positions(ctx, LAB)
        assert not can_manage_positions(ctx, OTHER_LAB)

    def test_client_cannot_manage_positions(self):
        assert not can_manage_positions(make_ctx(QCRole.CLIENT, laboratory_id=LAB), LAB)


class TestLaboratoryManagement:

    def test_quality_manager_edits_own_lab_only(self):
        ctx = make_ctx(QCRole.LAB_QUALITY_MANAGER, laboratory_id=LAB)
        assert can_manage_laboratory(ctx, LAB)
        assert not can_manage_laboratory(ctx, OTHER_LAB)

    def test_assistant_cannot_edit_lab(self):
        assert not can_manage_laboratory(make_ctx(QCRole.LAB_ASSISTANT, laboratory_id=LAB), LAB)

    def test_quality_admin_edits_any_lab(self):
        assert can_manage_laboratory(make_ctx(QCRole.GLOBAL_QUALITY_ADMIN), OTHER_LAB)


class TestFinanceAccess:

    def test_finance_roles(self):
        assert can_access_finance(make_ctx(QCRole.LAB_FINANCE_MANAGER))
        assert can_access_finance(make_ctx(QCRole.SANTOS_HQ_FINANCE))
        assert not can_access_finance(make_ctx(QCRole.LAB_ASSISTANT))
