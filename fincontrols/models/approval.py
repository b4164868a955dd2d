import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    String,
    Integer,
    Boolean,
    DateTime,
    Numeric,
    Text,
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from fincontrols.database import Base

APPROVAL_PENDING = "pending"
APPROVAL_APPROVED = "approved"
APPROVAL_REJECTED = "rejected"
TERMINAL_STATUSES = frozenset({APPROVAL_APPROVED, APPROVAL_REJECTED})


class ApprovalWorkflow(Base):
    """One amount tier of a workflow type: amounts >= min_amount go to required_role."""

    __tablename__ = "approval_workflows"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False
    )
    workflow_type: Mapped[str] = mapped_column(String(50), nullable=False)
    min_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, default=Decimal("0")
    )
    # Display only; tier selection uses min_amount
    max_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2))
    required_role: Mapped[str] = mapped_column(String(50), nullable=False)
    approval_order: Mapped[int] = mapped_column(Integer, default=1)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint("min_amount >= 0", name="chk_workflow_min_amount"),
        Index(
            "idx_workflows_lookup",
            "tenant_id",
            "workflow_type",
            "is_active",
            "min_amount",
        ),
    )


class ApprovalRequest(Base):
    """
    A request for approval of one business record.

    Created ``pending``; moves exactly once to ``approved`` or ``rejected``.
    The approver role is a snapshot of the tier matched at creation.
    """

    __tablename__ = "approval_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False
    )
    workflow_type: Mapped[str] = mapped_column(String(50), nullable=False)
    record_table: Mapped[str] = mapped_column(String(50), nullable=False)
    record_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    requested_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    current_approver_role: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(20), default=APPROVAL_PENDING)
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id")
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="chk_approval_request_status",
        ),
        Index("idx_approval_requests_record", "record_table", "record_id"),
        Index(
            "idx_approval_requests_queue",
            "tenant_id",
            "status",
            "current_approver_role",
        ),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
