from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field


class EmployeeCompensation(BaseModel):
    employee_id: Optional[str] = None
    basic_salary: Decimal = Field(..., ge=0)
    housing_allowance: Decimal = Field(Decimal("0"), ge=0)
    transport_allowance: Decimal = Field(Decimal("0"), ge=0)
    other_allowances: Decimal = Field(Decimal("0"), ge=0)
    advances_deducted: Decimal = Field(Decimal("0"), ge=0)
    other_deductions: Decimal = Field(Decimal("0"), ge=0)
    apply_paye: bool = True
    apply_napsa: bool = True
    apply_nhima: bool = True


class PayrollRunRequest(BaseModel):
    employees: List[EmployeeCompensation] = Field(..., min_length=1, max_length=5000)


class PayrollTaxResponse(BaseModel):
    employee_id: Optional[str] = None
    basic_salary: Decimal
    housing_allowance: Decimal
    transport_allowance: Decimal
    other_allowances: Decimal
    gross_salary: Decimal
    paye: Decimal
    napsa_employee: Decimal
    napsa_employer: Decimal
    nhima_employee: Decimal
    nhima_employer: Decimal
    advances_deducted: Decimal
    other_deductions: Decimal
    total_deductions: Decimal
    net_salary: Decimal

    @classmethod
    def from_result(cls, r, employee_id: Optional[str] = None) -> "PayrollTaxResponse":
        return cls(
            employee_id=employee_id,
            basic_salary=r.basic_salary,
            housing_allowance=r.housing_allowance,
            transport_allowance=r.transport_allowance,
            other_allowances=r.other_allowances,
            gross_salary=r.gross_salary,
            paye=r.paye,
            napsa_employee=r.napsa_employee,
            napsa_employer=r.napsa_employer,
            nhima_employee=r.nhima_employee,
            nhima_employer=r.nhima_employer,
            advances_deducted=r.advances_deducted,
            other_deductions=r.other_deductions,
            total_deductions=r.total_deductions,
            net_salary=r.net_salary,
        )


class PayrollRunSummaryResponse(BaseModel):
    employee_count: int
    total_gross: Decimal
    total_paye: Decimal
    total_napsa_employee: Decimal
    total_napsa_employer: Decimal
    total_nhima_employee: Decimal
    total_nhima_employer: Decimal
    total_deductions: Decimal
    total_net: Decimal
    employees: List[PayrollTaxResponse] = Field(default_factory=list)
