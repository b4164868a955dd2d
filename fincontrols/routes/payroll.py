from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fincontrols.actor import PAYROLL_ROLES, ActorContext
from fincontrols.middleware.auth import get_current_actor
from fincontrols.middleware.authorization import require_roles
from fincontrols.middleware.tenant import get_db_with_tenant
from fincontrols.schemas.payroll import (
    EmployeeCompensation,
    PayrollRunRequest,
    PayrollRunSummaryResponse,
    PayrollTaxResponse,
)
from fincontrols.services.tax_engine import calculate_payroll, summarize_payroll_run
from fincontrols.services.tax_policy_service import load_tax_policy

router = APIRouter()


def _calculate(employee: EmployeeCompensation, policy):
    return calculate_payroll(
        employee.basic_salary,
        employee.housing_allowance,
        employee.transport_allowance,
        employee.other_allowances,
        employee.advances_deducted,
        employee.other_deductions,
        policy=policy,
        apply_paye=employee.apply_paye,
        apply_napsa=employee.apply_napsa,
        apply_nhima=employee.apply_nhima,
    )


@router.post("/calculate", response_model=PayrollTaxResponse)
async def calculate_employee_payroll(
    body: EmployeeCompensation,
    actor: ActorContext = Depends(get_current_actor),
    _auth: None = Depends(require_roles(*PAYROLL_ROLES)),
    db: AsyncSession = Depends(get_db_with_tenant),
):
    policy = await load_tax_policy(db, actor.tenant_id)
    return PayrollTaxResponse.from_result(_calculate(body, policy), body.employee_id)


@router.post("/run-summary", response_model=PayrollRunSummaryResponse)
async def summarize_run(
    body: PayrollRunRequest,
    actor: ActorContext = Depends(get_current_actor),
    _auth: None = Depends(require_roles(*PAYROLL_ROLES)),
    db: AsyncSession = Depends(get_db_with_tenant),
):
    policy = await load_tax_policy(db, actor.tenant_id)
    results = [_calculate(e, policy) for e in body.employees]
    totals = summarize_payroll_run(results)
    return PayrollRunSummaryResponse(
        employee_count=totals.employee_count,
        total_gross=totals.total_gross,
        total_paye=totals.total_paye,
        total_napsa_employee=totals.total_napsa_employee,
        total_napsa_employer=totals.total_napsa_employer,
        total_nhima_employee=totals.total_nhima_employee,
        total_nhima_employer=totals.total_nhima_employer,
        total_deductions=totals.total_deductions,
        total_net=totals.total_net,
        employees=[
            PayrollTaxResponse.from_result(r, e.employee_id)
            for e, r in zip(body.employees, results)
        ],
    )
