"""Baseline migration - identity, companies, ticketing, and audit tables

Revision ID: 0001_baseline
Revises: 
Create Date: 2026-10-18

Creates every table of the storm dispatch schema, including the partial
unique indexes that back the one-active-assignment and one-open-segment
rules.
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the storm dispatch schema."""

    op.execute('CREATE EXTENSION IF NOT EXISTS pgcrypto')  # For gen_random_uuid()

    # ==========================================================================
    # Companies & Users
    # ==========================================================================
    op.execute('''
        CREATE TABLE companies (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name VARCHAR(255) NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')

    op.execute('''
        CREATE TABLE users (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            email VARCHAR(255) UNIQUE,
            first_name VARCHAR(100),
            last_name VARCHAR(100),
            role VARCHAR(20),
            company_id UUID REFERENCES companies(id) ON DELETE SET NULL,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            token_version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_users_role CHECK (
                role IS NULL OR role IN ('ADMIN', 'MANAGER', 'CONTRACTOR', 'UTILITY')
            )
        )
    ''')

    op.execute('''
        CREATE TABLE user_company_access (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            company_id UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
            granted_by_user_id UUID REFERENCES users(id) ON DELETE SET NULL,
            granted_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_user_company_access UNIQUE (user_id, company_id)
        )
    ''')
    op.execute('CREATE INDEX idx_user_company_access_user ON user_company_access(user_id)')
    op.execute('CREATE INDEX idx_user_company_access_company ON user_company_access(company_id)')

    op.execute('''
        CREATE TABLE crews (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            company_id UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
            name VARCHAR(255) NOT NULL,
            crew_lead VARCHAR(255),
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute('CREATE INDEX idx_crews_company ON crews(company_id)')

    # ==========================================================================
    # Storm Sessions & Issue Types
    # ==========================================================================
    op.execute('''
        CREATE TABLE storm_sessions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name VARCHAR(255) NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            created_by_user_id UUID REFERENCES users(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')

    op.execute('''
        CREATE TABLE issue_types (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name VARCHAR(255) NOT NULL,
            code VARCHAR(50) UNIQUE NOT NULL,
            default_priority VARCHAR(5) NOT NULL DEFAULT 'P2',
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')

    # ==========================================================================
    # Tickets
    # ==========================================================================
    op.execute('''
        CREATE TABLE tickets (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            session_id UUID NOT NULL REFERENCES storm_sessions(id),
            company_id UUID REFERENCES companies(id),
            issue_type_id UUID NOT NULL REFERENCES issue_types(id),
            external_ref TEXT,
            title TEXT,
            description TEXT,
            priority VARCHAR(5) NOT NULL DEFAULT 'P2',
            status VARCHAR(20) NOT NULL DEFAULT 'CREATED',
            address_text TEXT,
            lat DOUBLE PRECISION,
            lon DOUBLE PRECISION,
            feeder TEXT,
            circuit TEXT,
            created_by_user_id UUID NOT NULL REFERENCES users(id),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            closed_at TIMESTAMPTZ,
            version INTEGER NOT NULL DEFAULT 1,
            CONSTRAINT ck_tickets_closed_at CHECK (
                (status IN ('CLOSED', 'CANCELLED')) = (closed_at IS NOT NULL)
            )
        )
    ''')
    op.execute('CREATE INDEX idx_tickets_session ON tickets(session_id)')
    op.execute('CREATE INDEX idx_tickets_company ON tickets(company_id)')
    op.execute('CREATE INDEX idx_tickets_status ON tickets(status)')
    op.execute('CREATE INDEX idx_tickets_external_ref ON tickets(external_ref)')

    op.execute('''
        CREATE TABLE ticket_assignments (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            ticket_id UUID NOT NULL REFERENCES tickets(id),
            company_id UUID NOT NULL REFERENCES companies(id),
            crew_id UUID NOT NULL REFERENCES crews(id),
            status VARCHAR(20) NOT NULL DEFAULT 'PENDING_ACCEPT',
            assigned_by_user_id UUID NOT NULL REFERENCES users(id),
            assigned_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            responded_at TIMESTAMPTZ,
            response_note TEXT,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            version INTEGER NOT NULL DEFAULT 1
        )
    ''')
    op.execute('CREATE INDEX idx_ticket_assignments_ticket ON ticket_assignments(ticket_id)')
    op.execute('CREATE INDEX idx_ticket_assignments_company ON ticket_assignments(company_id)')
    op.execute('''
        CREATE UNIQUE INDEX uq_ticket_assignments_one_active
        ON ticket_assignments(ticket_id) WHERE is_active
    ''')

    op.execute('''
        CREATE TABLE ticket_status_events (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            ticket_id UUID NOT NULL REFERENCES tickets(id),
            old_status VARCHAR(20),
            new_status VARCHAR(20) NOT NULL,
            changed_by_user_id UUID NOT NULL REFERENCES users(id),
            changed_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            note TEXT
        )
    ''')
    op.execute('CREATE INDEX idx_ticket_status_events_ticket ON ticket_status_events(ticket_id, changed_at)')

    op.execute('''
        CREATE TABLE ticket_work_segments (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            ticket_id UUID NOT NULL REFERENCES tickets(id),
            session_id UUID NOT NULL REFERENCES storm_sessions(id),
            company_id UUID NOT NULL REFERENCES companies(id),
            crew_id UUID NOT NULL REFERENCES crews(id),
            started_at TIMESTAMPTZ NOT NULL,
            ended_at TIMESTAMPTZ,
            created_by_user_id UUID NOT NULL REFERENCES users(id),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute('CREATE INDEX idx_ticket_work_segments_ticket ON ticket_work_segments(ticket_id)')
    op.execute('''
        CREATE UNIQUE INDEX uq_ticket_work_segments_one_open
        ON ticket_work_segments(ticket_id, crew_id) WHERE ended_at IS NULL
    ''')

    # ==========================================================================
    # Audit
    # ==========================================================================
    op.execute('''
        CREATE TABLE audit_logs (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            actor_user_id UUID REFERENCES users(id) ON DELETE SET NULL,
            entity TEXT NOT NULL,
            entity_id VARCHAR(64) NOT NULL,
            action VARCHAR(20) NOT NULL,
            before_json JSONB,
            after_json JSONB,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute('CREATE INDEX idx_audit_entity ON audit_logs(entity, entity_id)')
    op.execute('CREATE INDEX idx_audit_actor_created ON audit_logs(actor_user_id, created_at)')


def downgrade() -> None:
    """Drop the storm dispatch schema."""
    for table in (
        'audit_logs',
        'ticket_work_segments',
        'ticket_status_events',
        'ticket_assignments',
        'tickets',
        'issue_types',
        'storm_sessions',
        'crews',
        'user_company_access',
        'users',
        'companies',
    ):
        op.execute(f'DROP TABLE IF EXISTS {table}')
