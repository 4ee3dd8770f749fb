"""Role assignment by email."""

from retaildesk.models import SecurityEvent, UserRole


def _assignment_id(user, role):
    return UserRole.query.filter_by(user_id=user.id, role=role).one().id


class TestAssign:

    def test_promote_customer_to_employee(self, client, admin_headers, customer_user, customer_headers):
        resp = client.post(
            "/api/admin/user-roles",
            json={"email": "Jane@Example.com", "role": "employee"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["assignment"]["user_id"] == customer_user.id
        assert resp.json["assignment"]["role"] == "employee"

        # Takes effect on the customer's next request
        me = client.get("/api/auth/me", headers=customer_headers).json
        assert me["roles"] == ["customer", "employee"]
        assert me["is_staff"] is True
        assert "CREATE_SALE" in me["permissions"]

    def test_unknown_email_writes_nothing(self, client, admin_headers, db_session):
        before = db_session.query(UserRole).count()
        resp = client.post(
            "/api/admin/user-roles",
            json={"email": "nobody@example.com", "role": "employee"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert db_session.query(UserRole).count() == before

    def test_unknown_role(self, client, admin_headers, customer_user):
        resp = client.post(
            "/api/admin/user-roles",
            json={"email": customer_user.email, "role": "superuser"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_duplicate_conflicts(self, client, admin_headers, customer_user):
        resp = client.post(
            "/api/admin/user-roles",
            json={"email": customer_user.email, "role": "customer"},
            headers=admin_headers,
        )
        assert resp.status_code == 409

    def test_assignment_is_audited(self, client, admin_headers, admin_user, customer_user, db_session):
        client.post(
            "/api/admin/user-roles",
            json={"email": customer_user.email, "role": "employee"},
            headers=admin_headers,
        )
        event = db_session.query(SecurityEvent).filter_by(event_type="ROLE_ASSIGNED").one()
        assert event.user_id == admin_user.id
        assert event.resource == f"user:{customer_user.id}"


class TestListAndRemove:

    def test_list(self, client, admin_headers, employee_user, customer_user):
        resp = client.get("/api/admin/user-roles", headers=admin_headers)
        assert resp.status_code == 200
        pairs = {(a["email"], a["role"]) for a in resp.json["assignments"]}
        assert pairs == {
            ("admin@retaildesk.test", "admin"),
            ("clerk@retaildesk.test", "employee"),
            ("jane@example.com", "customer"),
        }
        assert resp.json["roles"] == ["admin", "customer", "employee"]

    def test_remove(self, client, admin_headers, employee_user, employee_headers):
        assignment_id = _assignment_id(employee_user, "employee")
        resp = client.delete(f"/api/admin/user-roles/{assignment_id}", headers=admin_headers)
        assert resp.status_code == 200

        resp = client.post("/api/sales", json={"items": [], "payment_method": "cash"}, headers=employee_headers)
        assert resp.status_code == 403

    def test_remove_unknown(self, client, admin_headers):
        assert client.delete("/api/admin/user-roles/999", headers=admin_headers).status_code == 404

    def test_last_admin_cannot_be_removed(self, client, admin_headers, admin_user):
        resp = client.delete(f"/api/admin/user-roles/{_assignment_id(admin_user, 'admin')}", headers=admin_headers)
        assert resp.status_code == 409

    def test_admin_cannot_drop_own_admin_role(self, client, admin_headers, admin_user, employee_user):
        client.post(
            "/api/admin/user-roles",
            json={"email": employee_user.email, "role": "admin"},
            headers=admin_headers,
        )
        resp = client.delete(f"/api/admin/user-roles/{_assignment_id(admin_user, 'admin')}", headers=admin_headers)
        assert resp.status_code == 409

    def test_other_admin_can_be_removed(self, client, admin_headers, employee_user):
        client.post(
            "/api/admin/user-roles",
            json={"email": employee_user.email, "role": "admin"},
            headers=admin_headers,
        )
        resp = client.delete(
            f"/api/admin/user-roles/{_assignment_id(employee_user, 'admin')}",
            headers=admin_headers,
        )
        assert resp.status_code == 200
