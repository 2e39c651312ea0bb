"""
Authorization tests.

Verifies:
- Requests without caller context return 401
- Caller context naming another tenant's staff, or inactive staff, is 401
- Each role only reaches the operations its permission set grants (403 otherwise)
"""

import pytest

from clinic.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    PermissionCategory,
    StaffRole,
    get_all_permission_codes,
    get_permission_definition,
    get_permissions_by_category,
    get_role_permissions,
    is_valid_role,
    role_has_permission,
    validate_permission_code,
)


# =============================================================================
# PERMISSION CATALOG
# =============================================================================


class TestPermissionCatalog:
    def test_every_role_grant_is_defined(self):
        codes = set(get_all_permission_codes())
        for role, granted in DEFAULT_ROLE_PERMISSIONS.items():
            assert set(granted) <= codes, role

    def test_every_role_has_a_permission_set(self):
        assert set(DEFAULT_ROLE_PERMISSIONS) == set(StaffRole.ALL)

    def test_definition_lookup(self):
        definition = get_permission_definition("MANAGE_CASH_DRAWER")
        assert definition["category"] == PermissionCategory.CASH
        assert get_permission_definition("LAUNCH_ROCKETS") is None
        assert validate_permission_code("VIEW_CASH_REPORTS")
        assert not validate_permission_code("LAUNCH_ROCKETS")

    def test_categories(self):
        codes = [perm[0] for perm in get_permissions_by_category(PermissionCategory.APPOINTMENTS)]
        assert "REVIEW_BOOKING_REQUESTS" in codes

    def test_role_lookup(self):
        assert is_valid_role(StaffRole.CASHIER)
        assert not is_valid_role("JANITOR")
        assert get_role_permissions("JANITOR") == frozenset()
        assert role_has_permission(StaffRole.OWNER, "VIEW_CASH_REPORTS")
        assert not role_has_permission(StaffRole.CASHIER, "MANAGE_CASH_DRAWER")
        assert not role_has_permission(StaffRole.VETERINARIAN, "OPERATE_CASH_DRAWER")


# =============================================================================
# CALLER CONTEXT - 401
# =============================================================================


class TestCallerContext:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/appointments/availability"),
            ("POST", "/api/appointments"),
            ("GET", "/api/appointment-requests"),
            ("GET", "/api/settings/business-hours"),
            ("POST", "/api/cash/drawers"),
            ("GET", "/api/cash/shifts"),
            ("GET", "/api/cash/reports"),
        ],
    )
    def test_requires_caller_context(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_staff_from_other_tenant(self, client, db_session, tenant, other_owner):
        headers = {"X-Tenant-Id": str(tenant.id), "X-Staff-Id": str(other_owner.id)}
        assert client.get("/api/cash/shifts", headers=headers).status_code == 401

    def test_inactive_staff(self, client, db_session, owner, auth_headers):
        owner.is_active = False
        db_session.commit()
        assert client.get("/api/cash/shifts", headers=auth_headers(owner)).status_code == 401

    def test_malformed_headers(self, client, db_session):
        headers = {"X-Tenant-Id": "one", "X-Staff-Id": "1"}
        assert client.get("/api/cash/shifts", headers=headers).status_code == 401

    def test_public_routes_need_no_context(self, client, db_session, location):
        resp = client.get("/api/public/availability", query_string={"tenant_slug": "happy-paws", "date": "2030-01-06"})
        assert resp.status_code == 200


# =============================================================================
# ROLE MATRIX - 403
# =============================================================================


class TestRoleMatrix:
    def test_assistant_reads_but_cannot_book(self, client, db_session, location, assistant, auth_headers):
        resp = client.get("/api/appointments/availability",
                          query_string={"location_id": location.id, "date": "2030-01-06"},
                          headers=auth_headers(assistant))
        assert resp.status_code == 200

        resp = client.post("/api/appointments", json={}, headers=auth_headers(assistant))
        assert resp.status_code == 403
        assert resp.get_json() == {
            "error": "Permission denied",
            "code": "PERMISSION_DENIED",
            "required_permission": "MANAGE_APPOINTMENTS",
        }

    def test_vet_has_no_cash_access(self, client, db_session, vet, auth_headers):
        resp = client.get("/api/cash/drawers", headers=auth_headers(vet))
        assert resp.status_code == 403
        assert resp.get_json()["required_permission"] == "OPERATE_CASH_DRAWER"

    def test_receptionist_operates_but_does_not_manage(self, client, db_session, location, receptionist, auth_headers):
        assert client.get("/api/cash/drawers", headers=auth_headers(receptionist)).status_code == 200
        resp = client.post("/api/cash/drawers", json={"location_id": location.id, "initial_amount_cents": 0},
                           headers=auth_headers(receptionist))
        assert resp.status_code == 403

    def test_owner_reaches_everything(self, client, db_session, location, owner, auth_headers):
        headers = auth_headers(owner)
        assert client.get("/api/cash/reports", headers=headers).status_code == 200
        assert client.get("/api/settings/business-hours", query_string={"location_id": location.id},
                          headers=headers).status_code == 200
        assert client.get("/api/appointment-requests", headers=headers).status_code == 200
