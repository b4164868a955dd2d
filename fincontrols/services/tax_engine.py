"""
Statutory payroll tax engine for PAYE, NAPSA and NHIMA.

Pure functions with no I/O. Rates and bands come in as a ``TaxPolicy``
so a tenant (or a new fiscal year) can change them without touching the
algorithm. All money is ``Decimal`` rounded half-up to 2 places at each
step below.

  PAYE   progressive marginal bands over gross pay
  NAPSA  rate x gross, the contribution capped at rate x pensionable ceiling
  NHIMA  flat rate x basic salary (allowances excluded), optionally capped

Statutory deductions do not reduce the PAYE base.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional, Sequence

import structlog

from fincontrols.exceptions import ValidationError
from fincontrols.money import ZERO, round_money, to_money

logger = structlog.get_logger()


def _policy_error(message: str) -> ValidationError:
    return ValidationError(message, code="INVALID_TAX_POLICY")


@dataclass(frozen=True)
class PayeBand:
    """One PAYE band. ``max_amount`` of None means the band is open-ended."""

    min_amount: Decimal
    max_amount: Optional[Decimal]
    rate: Decimal

    def __post_init__(self) -> None:
        if self.min_amount < 0:
            raise _policy_error("PAYE band minimum cannot be negative")
        if self.max_amount is not None and self.max_amount <= self.min_amount:
            raise _policy_error("PAYE band maximum must exceed its minimum")
        if not (Decimal("0") <= self.rate <= Decimal("1")):
            raise _policy_error("PAYE band rate must be between 0 and 1")

    @property
    def width(self) -> Optional[Decimal]:
        if self.max_amount is None:
            return None
        return self.max_amount - self.min_amount


DEFAULT_PAYE_BANDS: tuple[PayeBand, ...] = (
    PayeBand(Decimal("0"), Decimal("5100"), Decimal("0")),
    PayeBand(Decimal("5100"), Decimal("6800"), Decimal("0.20")),
    PayeBand(Decimal("6800"), Decimal("8900"), Decimal("0.30")),
    PayeBand(Decimal("8900"), None, Decimal("0.37")),
)

DEFAULT_NAPSA_RATE = Decimal("0.05")
DEFAULT_NAPSA_CEILING = Decimal("26840")
DEFAULT_NHIMA_RATE = Decimal("0.01")


def validate_paye_bands(bands: Sequence[PayeBand]) -> None:
    """Bands must start at 0, be contiguous, and only the last may be open-ended."""
    if not bands:
        raise _policy_error("At least one PAYE band is required")
    if bands[0].min_amount != 0:
        raise _policy_error("The first PAYE band must start at 0")
    for previous, current in zip(bands, bands[1:]):
        if previous.max_amount is None:
            raise _policy_error("Only the last PAYE band may be open-ended")
        if previous.max_amount != current.min_amount:
            raise _policy_error(
                f"PAYE bands must be contiguous: {previous.max_amount} != {current.min_amount}"
            )
    if bands[-1].max_amount is not None:
        raise _policy_error("The last PAYE band must be open-ended")


@dataclass(frozen=True)
class TaxPolicy:
    paye_bands: tuple[PayeBand, ...] = DEFAULT_PAYE_BANDS
    napsa_rate: Decimal = DEFAULT_NAPSA_RATE
    napsa_ceiling: Decimal = DEFAULT_NAPSA_CEILING
    nhima_rate: Decimal = DEFAULT_NHIMA_RATE
    # None leaves NHIMA uncapped
    nhima_cap: Optional[Decimal] = None

    def __post_init__(self) -> None:
        validate_paye_bands(self.paye_bands)
        for name in ("napsa_rate", "nhima_rate"):
            rate = getattr(self, name)
            if not (Decimal("0") <= rate <= Decimal("1")):
                raise _policy_error(f"{name} must be between 0 and 1")
        if self.napsa_ceiling < 0:
            raise _policy_error("napsa_ceiling cannot be negative")
        if self.nhima_cap is not None and self.nhima_cap < 0:
            raise _policy_error("nhima_cap cannot be negative")

    @property
    def napsa_cap(self) -> Decimal:
        """Largest monthly NAPSA contribution: the rate applied to the ceiling."""
        return round_money(self.napsa_ceiling * self.napsa_rate)


DEFAULT_TAX_POLICY = TaxPolicy()


@dataclass(frozen=True)
class Contribution:
    employee: Decimal
    employer: Decimal


NO_CONTRIBUTION = Contribution(employee=ZERO, employer=ZERO)


@dataclass(frozen=True)
class PayrollTaxResult:
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

    @property
    def employer_contributions(self) -> Decimal:
        return self.napsa_employer + self.nhima_employer


@dataclass(frozen=True)
class PayrollRunTotals:
    employee_count: int = 0
    total_gross: Decimal = ZERO
    total_paye: Decimal = ZERO
    total_napsa_employee: Decimal = ZERO
    total_napsa_employer: Decimal = ZERO
    total_nhima_employee: Decimal = ZERO
    total_nhima_employer: Decimal = ZERO
    total_deductions: Decimal = ZERO
    total_net: Decimal = ZERO
    results: tuple[PayrollTaxResult, ...] = field(default=(), repr=False)


def calculate_paye(
    taxable_income, bands: Sequence[PayeBand] = DEFAULT_PAYE_BANDS
) -> Decimal:
    """Progressive PAYE: each band taxes only the slice of income inside it."""
    income = to_money(taxable_income, "taxable_income")
    validate_paye_bands(bands)

    paye = Decimal("0")
    remaining = income
    for band in bands:
        if remaining <= 0:
            break
        width = band.width
        taxable_in_band = remaining if width is None else min(remaining, width)
        paye += taxable_in_band * band.rate
        remaining -= taxable_in_band

    return round_money(paye)


def calculate_napsa(gross_salary, policy: TaxPolicy = DEFAULT_TAX_POLICY) -> Contribution:
    gross = to_money(gross_salary, "gross_salary")
    # Cap the computed contribution, not the gross
    employee = min(round_money(gross * policy.napsa_rate), policy.napsa_cap)
    return Contribution(employee=employee, employer=employee)


def calculate_nhima(basic_salary, policy: TaxPolicy = DEFAULT_TAX_POLICY) -> Contribution:
    basic = to_money(basic_salary, "basic_salary")
    amount = round_money(basic * policy.nhima_rate)
    if policy.nhima_cap is not None:
        amount = min(amount, round_money(policy.nhima_cap))
    return Contribution(employee=amount, employer=amount)


def calculate_payroll(
    basic_salary,
    housing_allowance=0,
    transport_allowance=0,
    other_allowances=0,
    advances_deducted=0,
    other_deductions=0,
    policy: TaxPolicy = DEFAULT_TAX_POLICY,
    apply_paye: bool = True,
    apply_napsa: bool = True,
    apply_nhima: bool = True,
) -> PayrollTaxResult:
    """Full breakdown for one employee.

    A switched-off deduction (e.g. an employee exempt from NAPSA) is 0 for
    both the employee and the employer share.
    """
    basic = to_money(basic_salary, "basic_salary")
    housing = to_money(housing_allowance, "housing_allowance")
    transport = to_money(transport_allowance, "transport_allowance")
    other = to_money(other_allowances, "other_allowances")
    advances = to_money(advances_deducted, "advances_deducted")
    deductions = to_money(other_deductions, "other_deductions")

    gross = basic + housing + transport + other
    napsa = calculate_napsa(gross, policy) if apply_napsa else NO_CONTRIBUTION
    nhima = calculate_nhima(basic, policy) if apply_nhima else NO_CONTRIBUTION
    paye = calculate_paye(gross, policy.paye_bands) if apply_paye else ZERO

    total_deductions = napsa.employee + nhima.employee + paye + advances + deductions
    net = gross - total_deductions

    return PayrollTaxResult(
        basic_salary=basic,
        housing_allowance=housing,
        transport_allowance=transport,
        other_allowances=other,
        gross_salary=gross,
        paye=paye,
        napsa_employee=napsa.employee,
        napsa_employer=napsa.employer,
        nhima_employee=nhima.employee,
        nhima_employer=nhima.employer,
        advances_deducted=advances,
        other_deductions=deductions,
        total_deductions=total_deductions,
        net_salary=net,
    )


def summarize_payroll_run(results: Iterable[PayrollTaxResult]) -> PayrollRunTotals:
    """Totals for a payroll run over per-employee results."""
    results = tuple(results)

    def total(attr: str) -> Decimal:
        return sum((getattr(r, attr) for r in results), ZERO)

    totals = PayrollRunTotals(
        employee_count=len(results),
        total_gross=total("gross_salary"),
        total_paye=total("paye"),
        total_napsa_employee=total("napsa_employee"),
        total_napsa_employer=total("napsa_employer"),
        total_nhima_employee=total("nhima_employee"),
        total_nhima_employer=total("nhima_employer"),
        total_deductions=total("total_deductions"),
        total_net=total("net_salary"),
        results=results,
    )
    logger.debug(
        "payroll_run_summarized",
        employee_count=totals.employee_count,
        total_gross=str(totals.total_gross),
        total_net=str(totals.total_net),
    )
    return totals
