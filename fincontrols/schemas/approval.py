from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class ApprovalCreateRequest(BaseModel):
    workflow_type: str = Field(..., min_length=1, max_length=50)
    record_table: str = Field(..., min_length=1, max_length=50)
    record_id: str = Field(..., min_length=1)
    amount: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=2000)


class ApprovalRejectRequest(BaseModel):
    rejection_reason: Optional[str] = Field(None, max_length=1000)


class ApprovalRequestResponse(BaseModel):
    id: str
    tenant_id: str
    workflow_type: str
    record_table: str
    record_id: str
    requested_by: str
    current_approver_role: str
    amount: Optional[Decimal] = None
    notes: Optional[str] = None
    status: str
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, a) -> "ApprovalRequestResponse":
        return cls(
            id=str(a.id),
            tenant_id=str(a.tenant_id),
            workflow_type=a.workflow_type,
            record_table=a.record_table,
            record_id=str(a.record_id),
            requested_by=str(a.requested_by),
            current_approver_role=a.current_approver_role,
            amount=a.amount,
            notes=a.notes,
            status=a.status,
            approved_by=str(a.approved_by) if a.approved_by else None,
            approved_at=a.approved_at,
            rejection_reason=a.rejection_reason,
            created_at=a.created_at,
        )


class WorkflowTierCreate(BaseModel):
    workflow_type: str = Field(..., min_length=1, max_length=50)
    required_role: str = Field(..., min_length=1, max_length=50)
    min_amount: Decimal = Field(Decimal("0"), ge=0)
    max_amount: Optional[Decimal] = Field(None, ge=0)
    approval_order: int = Field(1, ge=1)


class WorkflowTierResponse(BaseModel):
    id: str
    workflow_type: str
    required_role: str
    min_amount: Decimal
    max_amount: Optional[Decimal] = None
    approval_order: int
    is_active: bool

    @classmethod
    def from_model(cls, w) -> "WorkflowTierResponse":
        return cls(
            id=str(w.id),
            workflow_type=w.workflow_type,
            required_role=w.required_role,
            min_amount=w.min_amount,
            max_amount=w.max_amount,
            approval_order=w.approval_order or 1,
            is_active=bool(w.is_active),
        )
