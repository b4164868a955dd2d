"""
Unit tests for fincontrols/services/tax_engine.py

Tests: calculate_paye (band edges, monotonicity), calculate_napsa (cap),
       calculate_nhima (optional cap), calculate_payroll (net identity,
       per-deduction switches), input and policy validation,
       summarize_payroll_run.
"""

from decimal import Decimal

import pytest

from fincontrols.exceptions import ValidationError
from fincontrols.services.tax_engine import (
    DEFAULT_TAX_POLICY,
    PayeBand,
    TaxPolicy,
    calculate_napsa,
    calculate_nhima,
    calculate_paye,
    calculate_payroll,
    summarize_payroll_run,
)


# ---------------------------------------------------------------------------
# PAYE
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "income, expected",
    [
        ("0", "0.00"),
        ("5100", "0.00"),
        ("6800", "340.00"),
        ("8900", "970.00"),
        ("10000", "1377.00"),
    ],
)
def test_paye_at_band_edges(income, expected):
    assert calculate_paye(Decimal(income)) == Decimal(expected)


def test_paye_taxes_only_the_slice_inside_each_band():
    # 100 over the tax-free threshold at 20%
    assert calculate_paye(Decimal("5200")) == Decimal("20.00")


def test_paye_is_monotonic():
    previous = Decimal("0")
    for income in range(0, 20001, 250):
        paye = calculate_paye(income)
        assert paye >= previous
        previous = paye


def test_paye_accepts_int_and_float():
    assert calculate_paye(6800) == Decimal("340.00")
    assert calculate_paye(6800.0) == Decimal("340.00")


def test_paye_with_custom_bands():
    bands = (
        PayeBand(Decimal("0"), Decimal("1000"), Decimal("0")),
        PayeBand(Decimal("1000"), None, Decimal("0.10")),
    )
    assert calculate_paye(Decimal("3000"), bands) == Decimal("200.00")


# ---------------------------------------------------------------------------
# NAPSA / NHIMA
# ---------------------------------------------------------------------------


def test_napsa_below_ceiling():
    c = calculate_napsa(Decimal("10000"))
    assert c.employee == Decimal("500.00")
    assert c.employer == Decimal("500.00")


@pytest.mark.parametrize("gross", ["26840", "30000", "1000000"])
def test_napsa_capped_at_ceiling(gross):
    c = calculate_napsa(Decimal(gross))
    assert c.employee == Decimal("1342.00")
    assert c.employer == c.employee


def test_napsa_cap_derived_from_policy():
    assert DEFAULT_TAX_POLICY.napsa_cap == Decimal("1342.00")


def test_nhima_on_basic_salary():
    c = calculate_nhima(Decimal("8000"))
    assert c.employee == Decimal("80.00")
    assert c.employer == Decimal("80.00")


def test_nhima_rounds_half_up():
    # 12.345 rounds to 12.35, not the banker's 12.34
    assert calculate_nhima(Decimal("1234.50")).employee == Decimal("12.35")


def test_nhima_capped():
    policy = TaxPolicy(nhima_cap=Decimal("50"))
    c = calculate_nhima(Decimal("8000"), policy)
    assert c.employee == Decimal("50.00")
    assert c.employer == Decimal("50.00")


def test_nhima_below_cap_unchanged():
    policy = TaxPolicy(nhima_cap=Decimal("50"))
    assert calculate_nhima(Decimal("3000"), policy).employee == Decimal("30.00")


def test_nhima_uncapped_by_default():
    assert DEFAULT_TAX_POLICY.nhima_cap is None
    assert calculate_nhima(Decimal("1000000")).employee == Decimal("10000.00")


# ---------------------------------------------------------------------------
# calculate_payroll
# ---------------------------------------------------------------------------


def test_payroll_components():
    r = calculate_payroll(
        Decimal("8000"),
        housing_allowance=Decimal("1500"),
        transport_allowance=Decimal("500"),
    )
    assert r.gross_salary == Decimal("10000.00")
    assert r.paye == Decimal("1377.00")
    assert r.napsa_employee == Decimal("500.00")
    # NHIMA uses basic only, not gross
    assert r.nhima_employee == Decimal("80.00")
    assert r.total_deductions == Decimal("1957.00")
    assert r.net_salary == Decimal("8043.00")
    assert r.employer_contributions == Decimal("580.00")


def test_payroll_net_identity_holds():
    r = calculate_payroll(
        "12345.67",
        housing_allowance="2000.10",
        transport_allowance="333.33",
        other_allowances="99.99",
        advances_deducted="500",
        other_deductions="120.50",
    )
    assert r.gross_salary == (
        r.basic_salary + r.housing_allowance + r.transport_allowance + r.other_allowances
    )
    assert r.total_deductions == (
        r.paye
        + r.napsa_employee
        + r.nhima_employee
        + r.advances_deducted
        + r.other_deductions
    )
    assert r.net_salary == r.gross_salary - r.total_deductions


def test_payroll_net_can_go_negative_with_large_advances():
    r = calculate_payroll("1000", advances_deducted="5000")
    assert r.net_salary < 0


def test_payroll_uses_supplied_policy():
    policy = TaxPolicy(
        napsa_rate=Decimal("0.10"),
        napsa_ceiling=Decimal("5000"),
        nhima_rate=Decimal("0.02"),
    )
    r = calculate_payroll("10000", policy=policy)
    assert r.napsa_employee == Decimal("500.00")
    assert r.nhima_employee == Decimal("200.00")


@pytest.mark.parametrize(
    "switch, fields",
    [
        ("apply_paye", ("paye",)),
        ("apply_napsa", ("napsa_employee", "napsa_employer")),
        ("apply_nhima", ("nhima_employee", "nhima_employer")),
    ],
)
def test_payroll_switch_off_gives_zero(switch, fields):
    on = calculate_payroll("10000")
    off = calculate_payroll("10000", **{switch: False})
    for name in fields:
        assert getattr(on, name) > 0
        assert getattr(off, name) == Decimal("0.00")
    assert off.net_salary == off.gross_salary - off.total_deductions
    assert off.net_salary > on.net_salary


def test_payroll_all_switches_off_leaves_only_manual_deductions():
    r = calculate_payroll(
        "10000",
        other_deductions="250",
        apply_paye=False,
        apply_napsa=False,
        apply_nhima=False,
    )
    assert r.total_deductions == Decimal("250.00")
    assert r.employer_contributions == Decimal("0.00")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "bad", [Decimal("-1"), -0.01, float("nan"), float("inf"), Decimal("NaN"), "abc", None]
)
def test_invalid_amounts_rejected(bad):
    with pytest.raises(ValidationError) as exc_info:
        calculate_paye(bad)
    assert exc_info.value.code == "VALIDATION_ERROR"


def test_negative_allowance_rejected():
    with pytest.raises(ValidationError) as exc_info:
        calculate_payroll("5000", housing_allowance="-10")
    assert exc_info.value.details == {"field": "housing_allowance"}


def test_policy_bands_must_start_at_zero():
    with pytest.raises(ValidationError) as exc_info:
        TaxPolicy(paye_bands=(PayeBand(Decimal("100"), None, Decimal("0.1")),))
    assert exc_info.value.code == "INVALID_TAX_POLICY"


def test_policy_bands_must_be_contiguous():
    with pytest.raises(ValidationError):
        TaxPolicy(
            paye_bands=(
                PayeBand(Decimal("0"), Decimal("1000"), Decimal("0")),
                PayeBand(Decimal("1500"), None, Decimal("0.2")),
            )
        )


def test_policy_last_band_must_be_open_ended():
    with pytest.raises(ValidationError):
        TaxPolicy(paye_bands=(PayeBand(Decimal("0"), Decimal("1000"), Decimal("0")),))


def test_band_rate_out_of_range_rejected():
    with pytest.raises(ValidationError):
        PayeBand(Decimal("0"), None, Decimal("1.5"))


def test_policy_rate_out_of_range_rejected():
    with pytest.raises(ValidationError):
        TaxPolicy(napsa_rate=Decimal("-0.05"))


def test_policy_negative_nhima_cap_rejected():
    with pytest.raises(ValidationError):
        TaxPolicy(nhima_cap=Decimal("-1"))


# ---------------------------------------------------------------------------
# summarize_payroll_run
# ---------------------------------------------------------------------------


def test_summarize_payroll_run_totals():
    results = [
        calculate_payroll("8000", housing_allowance="1500", transport_allowance="500"),
        calculate_payroll("5000"),
    ]
    totals = summarize_payroll_run(results)
    assert totals.employee_count == 2
    assert totals.total_gross == Decimal("15000.00")
    assert totals.total_paye == Decimal("1377.00")
    assert totals.total_napsa_employee == Decimal("750.00")
    assert totals.total_nhima_employee == Decimal("130.00")
    assert totals.total_net == sum(r.net_salary for r in results)


def test_summarize_empty_run():
    totals = summarize_payroll_run([])
    assert totals.employee_count == 0
    assert totals.total_gross == Decimal("0.00")
