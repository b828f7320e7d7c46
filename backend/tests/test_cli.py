"""
CLI command tests (perms, audit, maintenance groups).
"""

from datetime import timedelta

from conftest import make_employee
from bizops.models import Permission, PermissionAuditLog, Role
from bizops.permissions import PERMISSION_DEFINITIONS
from bizops.services.audit_service import AuditEntry
from bizops.time_utils import utcnow


def test_perms_seed_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["perms", "seed"])
    second = runner.invoke(args=["perms", "seed"])

    assert first.exit_code == 0
    assert f"Created {len(PERMISSION_DEFINITIONS)} permissions, 5 roles" in first.output
    assert "Created 0 permissions, 0 roles, 0 grants" in second.output
    assert db_session.query(Permission).count() == len(PERMISSION_DEFINITIONS)


def test_perms_grant_and_check(app, db_session, employees):
    runner = app.test_cli_runner()

    before = runner.invoke(args=["perms", "check", "admin@bizops.test", "view.reports.enable"])
    assert "FAIL" in before.output

    granted = runner.invoke(args=["perms", "grant", "admin", "view.reports.enable"])
    assert "PASS Granted" in granted.output

    after = runner.invoke(args=["perms", "check", "admin@bizops.test", "view.reports.enable"])
    assert "PASS" in after.output
    assert "via role 'admin'" in after.output
    assert "technician (inherited)" in after.output


def test_perms_grant_unknown_key(app, db_session, seeded):
    result = app.test_cli_runner().invoke(args=["perms", "grant", "admin", "fly.reports.enable"])
    assert "FAIL Error" in result.output


def test_perms_revoke(app, db_session, employees):
    runner = app.test_cli_runner()
    runner.invoke(args=["perms", "revoke", "technician", "modify.users.enable"])

    listing = runner.invoke(args=["perms", "list", "--role", "technician"])
    assert "modify.users.enable" in listing.output
    assert "revoked" in listing.output


def test_perms_assign(app, db_session, seeded):
    make_employee(db_session, "fresh@bizops.test")
    result = app.test_cli_runner().invoke(args=["perms", "assign", "fresh@bizops.test", "sales"])
    assert "PASS Assigned role 'sales'" in result.output


def test_validate_graph(app, db_session, seeded):
    runner = app.test_cli_runner()
    ok = runner.invoke(args=["perms", "validate-graph"])
    assert ok.exit_code == 0
    assert "acyclic (5 active roles)" in ok.output

    technician = db_session.query(Role).filter_by(name="technician").one()
    executive = db_session.query(Role).filter_by(name="executive").one()
    technician.parents.append(executive)
    db_session.commit()

    broken = runner.invoke(args=["perms", "validate-graph"])
    assert broken.exit_code == 1
    assert "cycle" in broken.output


def test_audit_commands(app, db_session, resolver, employees):
    tech_id = employees["technician"].id
    resolver.check_permission(tech_id, "hardDelete.businesses.enable", ip_address="10.9.9.9")
    runner = app.test_cli_runner()

    trail = runner.invoke(args=["audit", "trail", "technician@bizops.test"])
    assert "hardDelete.businesses.enable" in trail.output

    events = runner.invoke(args=["audit", "events", "--hours", "1"])
    assert "permission_denied" in events.output
    assert "10.9.9.9" in events.output


def test_cleanup_audit_log(app, db_session, resolver):
    resolver.audit_logger.record(AuditEntry(
        employee_id=1,
        event_type="permission_denied",
        permission_key="view.users.enable",
        result="denied",
        occurred_at=utcnow() - timedelta(days=500),
    ))

    result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-audit-log", "--retention-days", "365"])
    assert "Deleted 1 audit entries older than 365 days." in result.output


def test_audit_search_and_stats(app, db_session, resolver, employees):
    tech_id = employees["technician"].id
    resolver.check_permission(tech_id, "view.users.enable")
    resolver.check_permission(tech_id, "hardDelete.users.enable")
    runner = app.test_cli_runner()

    denied = runner.invoke(args=["audit", "search", "--employee", "technician@bizops.test", "--result", "denied"])
    assert "hardDelete.users.enable" in denied.output
    assert "view.users.enable" not in denied.output
    assert "(1 entries)" in denied.output

    bad_date = runner.invoke(args=["audit", "search", "--since", "yesterday"])
    assert "FAIL Invalid date" in bad_date.output

    stats = runner.invoke(args=["audit", "stats"])
    assert "Total: 2  granted: 1  denied: 1" in stats.output
    assert "technician@bizops.test" in stats.output


def test_cleanup_dry_run_and_status(app, db_session, resolver):
    resolver.audit_logger.record(AuditEntry(
        employee_id=1,
        event_type="permission_denied",
        permission_key="view.users.enable",
        result="denied",
        occurred_at=utcnow() - timedelta(days=500),
    ))
    runner = app.test_cli_runner()

    preview = runner.invoke(args=["maintenance", "cleanup-audit-log", "--retention-days", "365", "--dry-run"])
    assert "DRY RUN Would delete 1 audit entries older than 365 days." in preview.output
    assert db_session.query(PermissionAuditLog).count() == 1

    status = runner.invoke(args=["maintenance", "audit-status", "--retention-days", "365"])
    assert "Entries:   1" in status.output
    assert "1 entries past the window" in status.output
    assert "0 queued" in status.output
