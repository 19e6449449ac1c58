"""SQLAlchemy ORM models for identity, companies, storm sessions, and tickets."""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    Boolean,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.enums import (
    DEFAULT_TICKET_PRIORITY,
    AssignmentStatus,
    TicketStatus,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Identity & Tenant Models
# =============================================================================

class Company(Base):
    """
    A contracting company: the scoping unit for company-owned data.

    Tickets, crews, rosters, timesheets, expenses and invoices all belong to
    exactly one company.
    """
    __tablename__ = "companies"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, server_default=true(), default=True)
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    crews: Mapped[list["Crew"]] = relationship(back_populates="company")


class User(Base):
    """
    A person known to the identity provider.

    `id` is the verified subject identifier. `role` is null until an ADMIN
    assigns one; CONTRACTOR users are bound to one company via `company_id`.
    """
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[str | None] = mapped_column(String(20), nullable=True)  # Role
    company_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("companies.id", ondelete="SET NULL"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, server_default=true(), default=True)
    token_version: Mapped[int] = mapped_column(
        Integer, server_default=text("1"), default=1, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )

    company: Mapped["Company | None"] = relationship()

    @property
    def display_name(self) -> str:
        full = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full or self.email or str(self.id)


class UserCompanyAccess(Base):
    """Grant giving a UTILITY user access to one company's data."""
    __tablename__ = "user_company_access"
    __table_args__ = (
        UniqueConstraint("user_id", "company_id", name="uq_user_company_access"),
        Index("idx_user_company_access_user", "user_id"),
        Index("idx_user_company_access_company", "company_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    granted_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    granted_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )


class Crew(Base):
    """A field crew on a company's roster."""
    __tablename__ = "crews"
    __table_args__ = (Index("idx_crews_company", "company_id"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("companies.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    crew_lead: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, server_default=true(), default=True)
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )

    company: Mapped["Company"] = relationship(back_populates="crews")


# =============================================================================
# Storm Sessions & Reference Data
# =============================================================================

class StormSession(Base):
    """A storm response event that groups tickets."""
    __tablename__ = "storm_sessions"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, server_default=true(), default=True)
    created_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )


class IssueType(Base):
    """Kind of restoration work (e.g. wire down, pole replacement)."""
    __tablename__ = "issue_types"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    default_priority: Mapped[str] = mapped_column(
        String(5),
        default=DEFAULT_TICKET_PRIORITY.value,
        server_default=DEFAULT_TICKET_PRIORITY.value,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, server_default=true(), default=True)
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )


# =============================================================================
# Ticketing
# =============================================================================

class Ticket(Base):
    """
    A unit of restoration work.

    `company_id` is set by assignment. `closed_at` is set iff the status is
    terminal (CLOSED or CANCELLED). Rows are never deleted.

    `version` drives optimistic concurrency: a concurrent update raises
    StaleDataError at flush.
    """
    __tablename__ = "tickets"
    __table_args__ = (
        Index("idx_tickets_session", "session_id"),
        Index("idx_tickets_company", "company_id"),
        Index("idx_tickets_status", "status"),
        Index("idx_tickets_external_ref", "external_ref"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("storm_sessions.id"), nullable=False
    )
    company_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("companies.id"), nullable=True
    )
    issue_type_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("issue_types.id"), nullable=False
    )
    external_ref: Mapped[str | None] = mapped_column(Text, nullable=True)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(
        String(5),
        default=DEFAULT_TICKET_PRIORITY.value,
        server_default=DEFAULT_TICKET_PRIORITY.value,
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=TicketStatus.CREATED.value,
        server_default=TicketStatus.CREATED.value,
        nullable=False,
    )
    address_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lon: Mapped[float | None] = mapped_column(Float, nullable=True)
    feeder: Mapped[str | None] = mapped_column(Text, nullable=True)
    circuit: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), onupdate=_utcnow, nullable=False
    )
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    issue_type: Mapped["IssueType"] = relationship()
    assignments: Mapped[list["TicketAssignment"]] = relationship(
        back_populates="ticket", order_by="TicketAssignment.assigned_at"
    )
    status_events: Mapped[list["TicketStatusEvent"]] = relationship(
        back_populates="ticket", order_by="TicketStatusEvent.changed_at"
    )
    work_segments: Mapped[list["TicketWorkSegment"]] = relationship(
        back_populates="ticket", order_by="TicketWorkSegment.started_at"
    )


class TicketAssignment(Base):
    """
    Binding of one (company, crew) pair to a ticket.

    At most one row per ticket has is_active = true; superseded and rejected
    assignments are deactivated, never deleted.
    """
    __tablename__ = "ticket_assignments"
    __table_args__ = (
        Index("idx_ticket_assignments_ticket", "ticket_id"),
        Index("idx_ticket_assignments_company", "company_id"),
        Index(
            "uq_ticket_assignments_one_active",
            "ticket_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    ticket_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tickets.id"), nullable=False)
    company_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("companies.id"), nullable=False)
    crew_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("crews.id"), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=AssignmentStatus.PENDING_ACCEPT.value,
        server_default=AssignmentStatus.PENDING_ACCEPT.value,
        nullable=False,
    )
    assigned_by_user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"), nullable=False
    )
    assigned_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    responded_at: Mapped[datetime | None] = mapped_column(nullable=True)
    response_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, server_default=true(), default=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    ticket: Mapped["Ticket"] = relationship(back_populates="assignments")
    crew: Mapped["Crew"] = relationship()


class TicketStatusEvent(Base):
    """Append-only ticket status history (old_status is null for creation)."""
    __tablename__ = "ticket_status_events"
    __table_args__ = (Index("idx_ticket_status_events_ticket", "ticket_id", "changed_at"),)

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    ticket_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tickets.id"), nullable=False)
    old_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    new_status: Mapped[str] = mapped_column(String(20), nullable=False)
    changed_by_user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"), nullable=False
    )
    changed_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    ticket: Mapped["Ticket"] = relationship(back_populates="status_events")


class TicketWorkSegment(Base):
    """
    Interval a crew spent actively working a ticket.

    At most one open segment (ended_at null) per (ticket, crew).
    """
    __tablename__ = "ticket_work_segments"
    __table_args__ = (
        Index("idx_ticket_work_segments_ticket", "ticket_id"),
        Index(
            "uq_ticket_work_segments_one_open",
            "ticket_id",
            "crew_id",
            unique=True,
            postgresql_where=text("ended_at IS NULL"),
            sqlite_where=text("ended_at IS NULL"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    ticket_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("tickets.id"), nullable=False)
    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("storm_sessions.id"), nullable=False
    )
    company_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("companies.id"), nullable=False)
    crew_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("crews.id"), nullable=False)
    started_at: Mapped[datetime] = mapped_column(nullable=False)
    ended_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_by_user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )

    ticket: Mapped["Ticket"] = relationship(back_populates="work_segments")


# =============================================================================
# Audit
# =============================================================================

class AuditLog(Base):
    """
    Append-only audit trail.

    One row per mutated entity, with JSON snapshots before and after the
    change. actor_user_id is null for system/CLI changes.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("idx_audit_entity", "entity", "entity_id"),
        Index("idx_audit_actor_created", "actor_user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    actor_user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    entity: Mapped[str] = mapped_column(Text, nullable=False)  # AuditEntity
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)  # AuditAction
    before_json: Mapped[dict[str, Any] | None] = mapped_column(nullable=True)
    after_json: Mapped[dict[str, Any] | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
