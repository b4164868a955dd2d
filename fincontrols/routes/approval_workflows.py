from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from fincontrols.actor import ActorContext
from fincontrols.middleware.auth import get_current_actor
from fincontrols.middleware.tenant import get_db_with_tenant
from fincontrols.schemas.approval import WorkflowTierCreate, WorkflowTierResponse
from fincontrols.services.approval_service import (
    create_workflow_tier,
    deactivate_workflow_tier,
    list_workflow_tiers,
)

router = APIRouter()


@router.get("", response_model=List[WorkflowTierResponse])
async def list_tiers(
    workflow_type: str = Query(None),
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_with_tenant),
):
    tiers = await list_workflow_tiers(db, actor, workflow_type=workflow_type)
    return [WorkflowTierResponse.from_model(t) for t in tiers]


@router.post("", response_model=WorkflowTierResponse, status_code=status.HTTP_201_CREATED)
async def create_tier(
    body: WorkflowTierCreate,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_with_tenant),
):
    tier = await create_workflow_tier(
        db,
        actor,
        workflow_type=body.workflow_type,
        required_role=body.required_role,
        min_amount=body.min_amount,
        max_amount=body.max_amount,
        approval_order=body.approval_order,
    )
    return WorkflowTierResponse.from_model(tier)


@router.delete("/{workflow_id}", response_model=WorkflowTierResponse)
async def deactivate_tier(
    workflow_id: str,
    actor: ActorContext = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db_with_tenant),
):
    tier = await deactivate_workflow_tier(db, actor, workflow_id)
    return WorkflowTierResponse.from_model(tier)
