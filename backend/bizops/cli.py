# Overview: Flask CLI command groups for permission seeding, inspection, auditing and maintenance.

# backend/bizops/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Permission catalog and grants:
# - python -m flask perms seed
#   Idempotent: upsert the catalog, create default roles and parents, write default grants.
# - python -m flask perms list [--role admin] [--resource service_locations]
#   List catalog entries, or a role's grant rows (granted and revoked).
# - python -m flask perms grant admin view.reports.enable
# - python -m flask perms revoke admin view.reports.enable
# - python -m flask perms assign tech@example.com technician
#   Give an employee a role.
# - python -m flask perms check tech@example.com modify.service_locations.enable
#   Show the decision, the role that produced it and the employee's roles.
# - python -m flask perms validate-graph
#   Fail when the role inheritance graph has a cycle.
#
# Audit:
# - python -m flask audit trail tech@example.com --limit 20
# - python -m flask audit events --hours 24
# - python -m flask audit search --employee tech@example.com --result denied --since 2026-01-01
# - python -m flask audit stats
#
# Maintenance:
# - python -m flask maintenance cleanup-audit-log --retention-days 365
#   Delete permission audit entries older than the retention window.
# - python -m flask maintenance cleanup-audit-log --dry-run
#   Show what would be deleted.
# - python -m flask maintenance audit-status
#   Audit log size, expired entries, retry queue and recent cleanups.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import ConfigurationError, UnknownPermissionError
from .extensions import db, get_permission_resolver
from .models import Employee, Permission
from .services import catalog_service, maintenance_service
from .services.grant_store import GrantStore
from .time_utils import parse_iso_datetime


def _find_employee(ref):
    if ref.isdigit():
        return db.session.get(Employee, int(ref))
    return db.session.query(Employee).filter_by(email=ref).first()


@click.group('perms')
def perms_group():
    """Permission catalog, grant and role commands."""


@perms_group.command('seed')
@with_appcontext
def seed_permissions_cli():
    """Seed the permission catalog, default roles and default grants."""
    try:
        summary = catalog_service.seed_all()
    except (ConfigurationError, UnknownPermissionError) as e:
        click.echo(f"FAIL Seeding aborted: {e}")
        raise SystemExit(1)

    get_permission_resolver().invalidate(role_graph=True)
    click.echo(
        f"PASS Created {summary['permissions_created']} permissions, "
        f"{summary['roles_created']} roles, {summary['grants_created']} grants"
    )


@perms_group.command('list')
@click.option('--role', help='Show grant rows for this role')
@click.option('--resource', help='Filter catalog by resource type')
@with_appcontext
def list_permissions_cli(role, resource):
    """List catalog entries, or the grant rows of one role."""
    if role:
        try:
            grants = GrantStore().get_role_grants(role)
        except ValueError as e:
            click.echo(f"FAIL {e}")
            return

        click.echo(f"\n{'='*80}")
        click.echo(f"Grant rows for role: {role}")
        click.echo(f"{'='*80}\n")
        for rp in grants:
            state = "granted" if rp.is_granted else "revoked"
            click.echo(f"  {rp.permission.permission_key:<45} {state}")
        click.echo(f"\n Total: {len(grants)} rows\n")
        return

    query = db.session.query(Permission)
    if resource:
        query = query.filter_by(resource_type=resource)
    perms = query.order_by(Permission.resource_type, Permission.permission_key).all()

    current_resource = None
    for perm in perms:
        if perm.resource_type != current_resource:
            if current_resource:
                click.echo("")
            click.echo(f"RESOURCE {perm.resource_type}")
            click.echo("-"*80)
            current_resource = perm.resource_type
        flag = "" if perm.is_active else " (inactive)"
        click.echo(f"  {perm.permission_key:<45} {perm.description or ''}{flag}")

    click.echo(f"\n Total: {len(perms)} permissions\n")


@perms_group.command('grant')
@click.argument('role_name')
@click.argument('permission_key')
@with_appcontext
def grant_permission_cli(role_name, permission_key):
    """Grant a permission to a role."""
    try:
        get_permission_resolver().grant(role_name, permission_key)
        click.echo(f"PASS Granted '{permission_key}' to role '{role_name}'")
    except (ValueError, UnknownPermissionError) as e:
        click.echo(f"FAIL Error: {str(e)}")


@perms_group.command('revoke')
@click.argument('role_name')
@click.argument('permission_key')
@with_appcontext
def revoke_permission_cli(role_name, permission_key):
    """Revoke a permission from a role (the grant row is kept)."""
    try:
        get_permission_resolver().revoke(role_name, permission_key)
        click.echo(f"PASS Revoked '{permission_key}' from role '{role_name}'")
    except (ValueError, UnknownPermissionError) as e:
        click.echo(f"FAIL Error: {str(e)}")


@perms_group.command('assign')
@click.argument('employee')
@click.argument('role_name')
@with_appcontext
def assign_role_cli(employee, role_name):
    """Assign a role to an employee (email or id)."""
    emp = _find_employee(employee)
    if not emp:
        click.echo(f"FAIL Employee '{employee}' not found")
        return
    try:
        get_permission_resolver().assign_role(emp.id, role_name)
        click.echo(f"PASS Assigned role '{role_name}' to {emp.email}")
    except ValueError as e:
        click.echo(f"FAIL Error: {str(e)}")


@perms_group.command('check')
@click.argument('employee')
@click.argument('permission_key')
@with_appcontext
def check_permission_cli(employee, permission_key):
    """Check whether an employee (email or id) has a permission."""
    emp = _find_employee(employee)
    if not emp:
        click.echo(f"FAIL Employee '{employee}' not found")
        return

    resolver = get_permission_resolver()
    decision = resolver.evaluate_permission(emp.id, permission_key, skip_audit_log=True)

    if decision.allowed:
        click.echo(f"PASS {emp.full_name} <{emp.email}> HAS '{permission_key}' (via role '{decision.role_name}')")
    else:
        click.echo(f"FAIL {emp.full_name} <{emp.email}> DOES NOT HAVE '{permission_key}' ({decision.reason})")

    roles = resolver.get_user_roles(emp.id, include_inherited=True)
    labels = [f"{r.name}{' (inherited)' if r.inherited else ''}" for r in roles]
    click.echo(f"\nRoles: {', '.join(labels) or '-'}")
    click.echo(f"Total permissions: {len(resolver.get_user_permissions(emp.id))}")


@perms_group.command('validate-graph')
@with_appcontext
def validate_graph_cli():
    """Fail when the role inheritance graph contains a cycle."""
    try:
        graph = get_permission_resolver().validate_role_graph()
    except ConfigurationError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    click.echo(f"PASS Role graph is acyclic ({len(graph)} active roles)")


@click.group('audit')
def audit_group():
    """Permission audit log inspection."""


@audit_group.command('trail')
@click.argument('employee')
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def audit_trail_cli(employee, limit):
    """Most recent audit entries for one employee."""
    emp = _find_employee(employee)
    if not emp:
        click.echo(f"FAIL Employee '{employee}' not found")
        return

    entries = get_permission_resolver().get_audit_trail(emp.id, limit)
    for entry in entries:
        click.echo(
            f"{entry['occurred_at']}  {entry['result']:<8} {entry['event_type']:<24} {entry['permission_key']}"
        )
    click.echo(f"\n Total: {len(entries)} entries\n")


@audit_group.command('events')
@click.option('--hours', type=int, default=None, help='Lookback window (default: SECURITY_EVENTS_LOOKBACK_HOURS)')
@with_appcontext
def audit_events_cli(hours):
    """Grouped denials, blocked deletions and check errors."""
    if hours is None:
        hours = current_app.config.get("SECURITY_EVENTS_LOOKBACK_HOURS", 24)

    events = get_permission_resolver().get_recent_security_events(hours)
    click.echo(f"{'Event':<24} {'Employee':<10} {'IP':<16} {'Count':<6} Last seen")
    click.echo("-"*80)
    for event in events:
        click.echo(
            f"{event['event_type']:<24} {str(event['employee_id']):<10} "
            f"{event['ip_address'] or '-':<16} {event['event_count']:<6} {event['last_occurrence']}"
        )
    click.echo(f"\n Total: {len(events)} groups in the last {hours}h\n")


@audit_group.command('search')
@click.option('--employee', help='Employee email or id')
@click.option('--result', type=click.Choice(['granted', 'denied']))
@click.option('--since', help='ISO-8601 start (UTC when no offset)')
@click.option('--until', help='ISO-8601 end (UTC when no offset)')
@click.option('--page', type=int, default=1, show_default=True)
@click.option('--limit', type=int, default=50, show_default=True)
@with_appcontext
def audit_search_cli(employee, result, since, until, page, limit):
    """Filtered, paginated audit listing."""
    employee_id = None
    if employee:
        emp = _find_employee(employee)
        if not emp:
            click.echo(f"FAIL Employee '{employee}' not found")
            return
        employee_id = emp.id

    try:
        start = parse_iso_datetime(since)
        end = parse_iso_datetime(until)
    except ValueError as e:
        click.echo(f"FAIL Invalid date: {e}")
        return

    listing = get_permission_resolver().audit_logger.search_audit_log(
        employee_id=employee_id,
        result=result,
        start=start,
        end=end,
        page=page,
        limit=limit,
    )
    for entry in listing["logs"]:
        click.echo(
            f"{entry['occurred_at']}  {str(entry['employee_id']):<8} {entry['result']:<8} {entry['permission_key']}"
        )
    pagination = listing["pagination"]
    click.echo(f"\n Page {pagination['page']}/{pagination['total_pages']} ({pagination['total']} entries)\n")


@audit_group.command('stats')
@with_appcontext
def audit_stats_cli():
    """Audit totals, top permission keys and top employees."""
    resolver = get_permission_resolver()
    stats = resolver.audit_logger.get_audit_stats()

    click.echo(f"Total: {stats['total']}  granted: {stats['granted']}  denied: {stats['denied']}")
    click.echo(f"Queued for retry: {stats['pending_retries']}")
    cache = resolver.cache.stats()
    click.echo(f"Decision cache: {cache['entries']} entries, {cache['hits']} hits, {cache['misses']} misses")

    click.echo("\nTop permissions:")
    for row in stats["top_permissions"]:
        click.echo(f"  {row['permission_key']:<45} {row['result']:<8} {row['count']}")

    click.echo("\nTop employees:")
    for row in stats["top_employees"]:
        click.echo(f"  {str(row['employee_id']):<8} {row['email'] or '-':<35} {row['count']}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-audit-log')
@click.option('--retention-days', type=int, default=None, help='Default: AUDIT_RETENTION_DAYS')
@click.option('--dry-run', is_flag=True, help='Show what would be deleted without deleting')
@with_appcontext
def cleanup_audit_log_cli(retention_days, dry_run):
    """Delete permission audit entries older than the retention window."""
    if retention_days is None:
        retention_days = current_app.config.get("AUDIT_RETENTION_DAYS", 365)

    if dry_run:
        try:
            preview = maintenance_service.preview_audit_cleanup(retention_days=retention_days)
        except ValueError as e:
            click.echo(f"FAIL {e}")
            raise SystemExit(1)
        click.echo(f"DRY RUN Would delete {preview['would_delete_count']} audit entries older than {retention_days} days.")
        click.echo(f"  Cutoff:           {preview['cutoff']}")
        click.echo(f"  Oldest entry:     {preview['oldest_entry'] or '-'}")
        click.echo(f"  Newest to delete: {preview['newest_to_delete'] or '-'}")
        return

    resolver = get_permission_resolver()
    flushed = resolver.audit_logger.flush_pending()
    deleted = maintenance_service.cleanup_audit_log(
        retention_days=retention_days,
        audit_logger=resolver.audit_logger,
    )
    if flushed:
        click.echo(f"Flushed {flushed} queued audit entries.")
    click.echo(f"Deleted {deleted} audit entries older than {retention_days} days.")


@maintenance_group.command('audit-status')
@click.option('--retention-days', type=int, default=None, help='Default: AUDIT_RETENTION_DAYS')
@with_appcontext
def audit_status_cli(retention_days):
    """Audit log size, age and recent retention cleanups."""
    if retention_days is None:
        retention_days = current_app.config.get("AUDIT_RETENTION_DAYS", 365)

    status = maintenance_service.get_audit_retention_status(retention_days=retention_days)
    audit_logger = get_permission_resolver().audit_logger

    click.echo(f"Entries:   {status['total_entries']}  (last 7 days: {status['last_7_days']}, last 30 days: {status['last_30_days']})")
    click.echo(f"Oldest:    {status['oldest_entry'] or '-'}")
    click.echo(f"Newest:    {status['newest_entry'] or '-'}")
    click.echo(f"Retention: {retention_days} days, {status['expired_entries']} entries past the window")
    click.echo(f"Retry queue: {audit_logger.pending_count} queued, {audit_logger.dropped_count} dropped, "
               f"{audit_logger.rejected_count} rejected")

    click.echo("\nRecent cleanups:")
    for cleanup in status["recent_cleanups"]:
        details = cleanup["details"] or {}
        click.echo(f"  {cleanup['occurred_at']}  deleted {details.get('deleted', '?')}")
    if not status["recent_cleanups"]:
        click.echo("  -")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(perms_group)
    app.cli.add_command(audit_group)
    app.cli.add_command(maintenance_group)
