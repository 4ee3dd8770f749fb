"""
Authorization tests.

Verifies:
- Unauthenticated requests to protected endpoints return 401
- Storefront reads and the assistant stay public
- Customers are denied staff operations (403)
- Employees are denied admin operations (403)
- Denials are written to the security log
"""

import pytest

from retaildesk.models import SecurityEvent


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("POST", "/api/catalog/items"),
            ("PATCH", "/api/catalog/items/1"),
            ("DELETE", "/api/catalog/items/1"),
            ("POST", "/api/catalog/items/1/adjust"),
            ("GET", "/api/catalog/items/1/movements"),
            ("GET", "/api/catalog/low-stock"),
            ("POST", "/api/sales"),
            ("GET", "/api/sales"),
            ("GET", "/api/sales/1/receipt"),
            ("POST", "/api/orders/checkout"),
            ("GET", "/api/orders"),
            ("GET", "/api/orders/mine"),
            ("POST", "/api/orders/1/complete"),
            ("POST", "/api/orders/1/cancel"),
            ("POST", "/api/returns"),
            ("GET", "/api/returns"),
            ("GET", "/api/returns/mine"),
            ("POST", "/api/returns/1/approve"),
            ("GET", "/api/admin/user-roles"),
            ("POST", "/api/admin/user-roles"),
            ("DELETE", "/api/admin/user-roles/1"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token_rejected(self, client):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-real-token"})
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid or expired token"

    def test_logged_out_token_rejected(self, client, customer_headers):
        assert client.post("/api/auth/logout", headers=customer_headers).status_code == 200
        assert client.get("/api/auth/me", headers=customer_headers).status_code == 401


# =============================================================================
# PUBLIC STOREFRONT
# =============================================================================


class TestPublicAccess:

    def test_catalog_browsing_is_public(self, client, hammer):
        resp = client.get("/api/catalog/items")
        assert resp.status_code == 200
        assert [i["item_code"] for i in resp.json["items"]] == ["HAM-16"]

        resp = client.get(f"/api/catalog/items/{hammer.id}")
        assert resp.status_code == 200

    def test_health_is_public(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"


# =============================================================================
# CUSTOMER DENIED STAFF OPERATIONS - 403
# =============================================================================


class TestCustomerDenied:
    """Customers can shop and ask for returns, nothing more."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/catalog/items"),
            ("POST", "/api/catalog/items/1/adjust"),
            ("GET", "/api/catalog/low-stock"),
            ("POST", "/api/sales"),
            ("GET", "/api/sales"),
            ("GET", "/api/orders"),
            ("POST", "/api/orders/1/complete"),
            ("GET", "/api/returns"),
            ("POST", "/api/returns/1/approve"),
            ("GET", "/api/admin/user-roles"),
        ],
    )
    def test_forbidden(self, client, customer_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=customer_headers, json={})
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"
        assert "required_permission" in resp.json

    def test_denial_is_logged(self, client, customer_user, customer_headers, db_session):
        client.get("/api/sales", headers=customer_headers)
        event = (
            db_session.query(SecurityEvent)
            .filter_by(user_id=customer_user.id, event_type="PERMISSION_DENIED")
            .one()
        )
        assert event.success is False
        assert event.action == "VIEW_SALES"
        assert event.resource == "/api/sales"


# =============================================================================
# EMPLOYEE DENIED ADMIN OPERATIONS - 403
# =============================================================================


class TestEmployeeDenied:

    def test_cannot_manage_roles(self, client, employee_headers):
        resp = client.get("/api/admin/user-roles", headers=employee_headers)
        assert resp.status_code == 403

    def test_cannot_edit_catalog(self, client, employee_headers, hammer):
        resp = client.patch(
            f"/api/catalog/items/{hammer.id}",
            json={"unit_price_cents": 1},
            headers=employee_headers,
        )
        assert resp.status_code == 403

    def test_cannot_adjust_stock(self, client, employee_headers, hammer):
        resp = client.post(
            f"/api/catalog/items/{hammer.id}/adjust",
            json={"quantity_delta": 5},
            headers=employee_headers,
        )
        assert resp.status_code == 403

    def test_can_see_low_stock(self, client, employee_headers, hammer):
        resp = client.get("/api/catalog/low-stock", headers=employee_headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 1


# =============================================================================
# ADMIN ALLOWED
# =============================================================================


class TestAdminAllowed:

    def test_me_lists_every_permission(self, client, admin_headers):
        resp = client.get("/api/auth/me", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["roles"] == ["admin"]
        assert resp.json["is_staff"] is True
        assert "MANAGE_USERS" in resp.json["permissions"]

    def test_can_adjust_stock(self, client, admin_headers, hammer):
        resp = client.post(
            f"/api/catalog/items/{hammer.id}/adjust",
            json={"quantity_delta": -4, "note": "Cycle count"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["item"]["quantity"] == 6

    def test_adjust_below_zero_conflicts(self, client, admin_headers, hammer):
        resp = client.post(
            f"/api/catalog/items/{hammer.id}/adjust",
            json={"quantity_delta": -11},
            headers=admin_headers,
        )
        assert resp.status_code == 409
        assert resp.json["details"]["available"] == 10
