"""Flask CLI command groups."""

import pytest

from retaildesk.models import User, UserRole
from retaildesk.services import permission_service


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


class TestSystem:

    def test_init_creates_admin_once(self, runner, db_session):
        result = runner.invoke(args=["system", "init", "--admin-email", "boss@retaildesk.test"])
        assert result.exit_code == 0, result.output
        assert "Created admin" in result.output

        admin = db_session.query(User).filter_by(email="boss@retaildesk.test").one()
        assert permission_service.get_user_roles(admin.id) == ["admin"]

        result = runner.invoke(args=["system", "init"])
        assert result.exit_code == 0
        assert "already exists" in result.output
        assert db_session.query(UserRole).filter_by(role="admin").count() == 1

    def test_init_rejects_weak_password(self, runner, db_session):
        result = runner.invoke(args=["system", "init", "--admin-password", "weak"])
        assert result.exit_code != 0
        assert db_session.query(User).count() == 0


class TestUsersAndRoles:

    def test_create_and_list(self, runner):
        result = runner.invoke(args=[
            "users", "create",
            "--username", "sam",
            "--email", "sam@example.com",
            "--password", "Password123!",
            "--role", "employee",
        ])
        assert result.exit_code == 0, result.output

        result = runner.invoke(args=["users", "list"])
        assert "sam@example.com" in result.output
        assert "employee" in result.output

    def test_assign_and_remove(self, runner, customer_user):
        result = runner.invoke(args=["roles", "assign", "jane@example.com", "employee"])
        assert result.exit_code == 0, result.output
        assert permission_service.get_user_roles(customer_user.id) == ["customer", "employee"]

        result = runner.invoke(args=["roles", "remove", "jane@example.com", "employee"])
        assert result.exit_code == 0, result.output
        assert permission_service.get_user_roles(customer_user.id) == ["customer"]

    def test_assign_unknown_email(self, runner, db_session):
        result = runner.invoke(args=["roles", "assign", "ghost@example.com", "employee"])
        assert result.exit_code != 0
        assert "No user registered" in result.output

    def test_remove_missing_role(self, runner, customer_user):
        result = runner.invoke(args=["roles", "remove", "jane@example.com", "admin"])
        assert result.exit_code != 0


class TestCatalogAndMaintenance:

    def test_low_stock(self, runner, make_item):
        make_item("FEW", name="Hacksaw", quantity=1, reorder_level=3)
        make_item("MANY", name="Screws", quantity=500)

        result = runner.invoke(args=["catalog", "low-stock"])
        assert "FEW" in result.output
        assert "MANY" not in result.output

    def test_cleanup_sessions(self, runner, db_session):
        result = runner.invoke(args=["maintenance", "cleanup-sessions"])
        assert result.exit_code == 0
        assert "Deleted 0 session(s)" in result.output
