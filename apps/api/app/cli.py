"""CLI tools for storm dispatch administration."""

from uuid import UUID

import click

from app.core.errors import StormServiceError
from app.db.enums import Role, TicketPriority
from app.db.models import User
from app.db.session import SessionLocal
from app.services import company_service, grant_service, issue_type_service, user_service


@click.group()
def cli():
    """Storm dispatch CLI tools."""
    pass


@cli.command()
@click.option("--email", required=True, help="User email address")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=None,
    help="Role to assign (leave empty for pending users)",
)
@click.option("--company-id", type=click.UUID, default=None, help="Company (required for CONTRACTOR)")
@click.option("--user-id", type=click.UUID, default=None, help="Identity provider subject id")
def create_user(email: str, role: str | None, company_id: UUID | None, user_id: UUID | None):
    """
    Register a user.

    This is the bootstrap command for the first ADMIN, who then manages
    everyone else through the API.

    Example:
        python -m app.cli create-user --email admin@example.com --role ADMIN
    """
    db = SessionLocal()
    try:
        user = user_service.create_user(
            db,
            actor=None,
            email=email,
            role=role,
            company_id=company_id,
            user_id=user_id,
        )
        click.echo(f"✓ Created user: {user.email}")
        click.echo(f"  ID: {user.id}")
        click.echo(f"  Role: {user.role or '(none)'}")
    except StormServiceError as e:
        click.echo(f"❌ {e.detail}")
    finally:
        db.close()


@cli.command()
@click.option("--name", required=True, help="Company name")
def create_company(name: str):
    """Create a contracting company."""
    db = SessionLocal()
    try:
        company = company_service.create_company(db, actor=None, name=name)
        click.echo(f"✓ Created company: {company.name}")
        click.echo(f"  ID: {company.id}")
    except StormServiceError as e:
        click.echo(f"❌ {e.detail}")
    finally:
        db.close()


@cli.command()
@click.option("--name", required=True, help="Issue type name")
@click.option("--code", required=True, help="Unique short code (stored uppercase)")
@click.option(
    "--priority",
    type=click.Choice([p.value for p in TicketPriority]),
    default=TicketPriority.P2.value,
    show_default=True,
    help="Default ticket priority",
)
def create_issue_type(name: str, code: str, priority: str):
    """Create an issue type."""
    db = SessionLocal()
    try:
        issue_type = issue_type_service.create_issue_type(
            db, actor=None, name=name, code=code, default_priority=priority
        )
        click.echo(f"✓ Created issue type: {issue_type.code} ({issue_type.default_priority})")
    except StormServiceError as e:
        click.echo(f"❌ {e.detail}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="UTILITY user email")
@click.option("--company-id", type=click.UUID, required=True, help="Company to grant")
def grant_access(email: str, company_id: UUID):
    """Grant a UTILITY user access to a company's data."""
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user:
            click.echo(f"❌ User not found: {email}")
            return
        grant_service.grant_company_access(db, actor=None, company_id=company_id, user_id=user.id)
        click.echo(f"✓ Granted {user.email} access to company {company_id}")
    except StormServiceError as e:
        click.echo(f"❌ {e.detail}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to revoke sessions for")
def revoke_sessions(email: str):
    """
    Revoke all sessions for a user by bumping token_version.

    The user will need to log in again.
    """
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user:
            click.echo(f"❌ User not found: {email}")
            return

        user.token_version += 1
        db.commit()
        click.echo(f"✓ Revoked all sessions for {email}")
        click.echo(f"  New token version: {user.token_version}")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
