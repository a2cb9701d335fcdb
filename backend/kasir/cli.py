# Overview: Flask CLI command groups for bootstrap and tenant/user administration.

# backend/kasir/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py.
# - Apply migrations: python -m flask db upgrade
#
# System bootstrap/repair:
# - python -m flask system init [--tenant "Demo Store"] [--tenant-code DEMO]
#   Idempotent bootstrap: plans, permissions, demo tenant, outlet MAIN, default users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Tenant management:
# - python -m flask tenants list
# - python -m flask tenants create --name "Toko Maju" --code MAJU --plan BASIC
#
# Users:
# - python -m flask users create --tenant-code MAJU --username kasir1 --email kasir1@maju.id --role CASHIER
# - python -m flask users list [--tenant-code MAJU]

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Outlet, Tenant, User
from .permissions import ADMIN, CASHIER, SUPER_ADMIN
from .services import permission_service, subscription_service, tenant_service
from .services.auth_service import create_user
from .validation import ValidationError, ConflictError, NotFoundError, LimitExceededError


DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--tenant', 'tenant_name', default='Demo Store', help='Demo tenant name')
@click.option('--tenant-code', default='DEMO', help='Demo tenant code')
@with_appcontext
def init_system(tenant_name, tenant_code):
    """
    Initialize the system: subscription plans, permissions, a demo tenant with
    outlet MAIN, its default roles and three users.

    All passwords default to "Password123!". Change them in production!
    """
    click.echo("START Initializing system...")

    plans = subscription_service.seed_plans()
    click.echo(f"PASS Created {plans} subscription plans")

    perms = permission_service.initialize_permissions()
    click.echo(f"PASS Created {perms} permissions")

    tenant = db.session.query(Tenant).filter_by(code=tenant_code.upper()).first()
    if not tenant:
        tenant = tenant_service.create_tenant(tenant_name, tenant_code, plan_code="PRO")
        click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id}, Code: {tenant.code})")
    else:
        permission_service.create_default_roles(tenant.id)
        click.echo(f"PASS Using existing tenant: {tenant.name} (ID: {tenant.id})")

    outlet = db.session.query(Outlet).filter_by(tenant_id=tenant.id, code="MAIN").first()
    if not outlet:
        outlet = Outlet(tenant_id=tenant.id, name="Main Outlet", code="MAIN")
        db.session.add(outlet)
        db.session.commit()
        click.echo(f"PASS Created outlet: {outlet.name} (ID: {outlet.id})")

    code = tenant.code.lower()
    default_users = [
        ("owner", f"owner@{code}.local", SUPER_ADMIN),
        ("admin", f"admin@{code}.local", ADMIN),
        ("cashier", f"cashier@{code}.local", CASHIER),
    ]
    for username, email, role_name in default_users:
        existing = db.session.query(User).filter_by(tenant_id=tenant.id, username=username).first()
        if existing:
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        try:
            create_user(
                tenant_id=tenant.id,
                username=username,
                email=email,
                password=DEFAULT_PASSWORD,
                outlet_id=outlet.id,
                role_name=role_name,
            )
            click.echo(f"PASS Created user: {username} ({email}) with role '{role_name}'")
        except (ValidationError, ConflictError, NotFoundError, LimitExceededError) as e:
            click.echo(f"FAIL Failed to create user '{username}': {e}")

    click.echo("\nDONE System initialized.")
    click.echo(f"Default password for all users: {DEFAULT_PASSWORD} (CHANGE IN PRODUCTION!)")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('tenants')
def tenants_group():
    """Tenant management commands."""


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    tenants = db.session.query(Tenant).order_by(Tenant.id).all()
    if not tenants:
        click.echo("No tenants found.")
        return
    for tenant in tenants:
        plan = tenant.plan.code if tenant.plan else "-"
        state = "active" if tenant.is_active else "inactive"
        click.echo(f"{tenant.id:>4}  {tenant.code:<12} {tenant.name:<30} plan={plan:<6} {state}")


@tenants_group.command('create')
@click.option('--name', required=True, help='Tenant name')
@click.option('--code', required=True, help='Short code (unique)')
@click.option('--plan', 'plan_code', default=None, help='Subscription plan code (FREE, BASIC, PRO)')
@with_appcontext
def create_tenant_cli(name, code, plan_code):
    try:
        tenant = tenant_service.create_tenant(name, code, plan_code=plan_code)
    except (ValidationError, ConflictError, NotFoundError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created tenant {tenant.name} (ID: {tenant.id}, Code: {tenant.code})")


@click.group('users')
def users_group():
    """User administration commands."""


@users_group.command('create')
@click.option('--tenant-code', required=True, help='Tenant code')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice([SUPER_ADMIN, ADMIN, CASHIER]), prompt=True, help='Role')
@click.option('--outlet-code', default=None, help='Home outlet code')
@with_appcontext
def create_user_cli(tenant_code, username, email, password, role, outlet_code):
    tenant = db.session.query(Tenant).filter_by(code=tenant_code.upper()).first()
    if not tenant:
        raise click.ClickException(f"Tenant {tenant_code} not found")

    outlet_id = None
    if outlet_code:
        outlet = db.session.query(Outlet).filter_by(tenant_id=tenant.id, code=outlet_code).first()
        if not outlet:
            raise click.ClickException(f"Outlet {outlet_code} not found in tenant {tenant.code}")
        outlet_id = outlet.id

    try:
        user = create_user(
            tenant_id=tenant.id,
            username=username,
            email=email,
            password=password,
            outlet_id=outlet_id,
            role_name=role,
        )
    except (ValidationError, ConflictError, NotFoundError, LimitExceededError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user {user.username} (ID: {user.id}) with role {role}")


@users_group.command('list')
@click.option('--tenant-code', default=None, help='Filter by tenant code')
@with_appcontext
def list_users(tenant_code):
    query = db.session.query(User)
    if tenant_code:
        query = query.join(Tenant, Tenant.id == User.tenant_id).filter(Tenant.code == tenant_code.upper())
    for user in query.order_by(User.tenant_id, User.id).all():
        roles = ", ".join(permission_service.get_user_role_names(user.id)) or "-"
        state = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  tenant={user.tenant_id:<4} {user.username:<20} {user.email:<30} [{roles}] {state}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
    app.cli.add_command(users_group)
