# tests/common/test_permissions.py
"""
Тесты прав доступа по ролям.
"""

from __future__ import annotations

import pytest

from src.common.constants import UserRole
from src.common.errors import ForbiddenError
from src.common.permissions import ROLE_CAPABILITIES, Capability, Principal


class TestRoleCapabilities:
    """Матрица ролей и возможностей."""

    @pytest.mark.parametrize(
        "role, capability",
        [
            (UserRole.CUSTOMER, Capability.CREATE_RESERVATION),
            (UserRole.CUSTOMER, Capability.CREATE_CARD_INTENT),
            (UserRole.CUSTOMER, Capability.RATE_SERVICE),
            (UserRole.WASHER, Capability.CLAIM_JOB),
            (UserRole.WASHER, Capability.CONFIRM_CASH),
            (UserRole.WASHER, Capability.SHARE_LOCATION),
            (UserRole.ADMIN, Capability.ASSIGN_WASHER),
            (UserRole.ADMIN, Capability.REFUND_PAYMENT),
            (UserRole.ADMIN, Capability.VIEW_PAYMENT_STATS),
        ],
    )
    def test_allowed(self, role: UserRole, capability: Capability) -> None:
        assert Principal(user_id="u", role=role).can(capability)

    @pytest.mark.parametrize(
        "role, capability",
        [
            (UserRole.CUSTOMER, Capability.CLAIM_JOB),
            (UserRole.CUSTOMER, Capability.REFUND_PAYMENT),
            (UserRole.WASHER, Capability.CREATE_RESERVATION),
            (UserRole.WASHER, Capability.RATE_SERVICE),
            (UserRole.ADMIN, Capability.CLAIM_JOB),
            (UserRole.ADMIN, Capability.CREATE_RESERVATION),
        ],
    )
    def test_denied(self, role: UserRole, capability: Capability) -> None:
        assert not Principal(user_id="u", role=role).can(capability)

    def test_every_role_has_entry(self) -> None:
        assert set(ROLE_CAPABILITIES) == set(UserRole)


class TestPrincipal:
    """Тесты Principal."""

    def test_require_raises_forbidden(self, customer: Principal) -> None:
        with pytest.raises(ForbiddenError) as exc_info:
            customer.require(Capability.CLAIM_JOB)

        assert exc_info.value.status_code == 403
        assert exc_info.value.code == "FORBIDDEN"

    def test_require_passes(self, washer: Principal) -> None:
        washer.require(Capability.CLAIM_JOB)

    def test_role_flags(self, washer: Principal, admin: Principal) -> None:
        assert washer.is_washer and not washer.is_admin
        assert admin.is_admin and not admin.is_washer

    def test_is_hashable(self, customer: Principal) -> None:
        """Principal неизменяем и может быть ключом словаря."""
        assert {customer: 1}[Principal(user_id=customer.user_id, role=customer.role)] == 1
