"""Tenant-configurable payroll policy data: PAYE bands and statutory rates."""

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
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from fincontrols.database import Base


class PayeTaxBand(Base):
    __tablename__ = "paye_tax_bands"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False
    )
    band_order: Mapped[int] = mapped_column(Integer, nullable=False)
    min_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    max_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2))  # NULL = open-ended
    rate: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint("rate >= 0 AND rate <= 1", name="chk_paye_band_rate"),
        Index("idx_paye_bands_tenant", "tenant_id", "is_active", "band_order"),
    )


class PayrollStatutoryRate(Base):
    __tablename__ = "payroll_statutory_rates"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False
    )
    rate_type: Mapped[str] = mapped_column(String(20), nullable=False)  # napsa, nhima
    employee_rate: Mapped[Decimal] = mapped_column(Numeric(7, 4), nullable=False)
    # Recorded for employer cost reporting; payroll deductions use employee_rate
    employer_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(7, 4))
    # For NAPSA: the maximum pensionable base the rate applies to
    ceiling_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2))
    # For NHIMA: the most one employee contributes per run
    contribution_cap: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )

    __table_args__ = (
        Index("idx_statutory_rates_tenant", "tenant_id", "rate_type", "is_active"),
    )
