"""
Tenant payroll policy: load PAYE bands and statutory rates from the store.

Anything the tenant has not configured falls back to the statutory
defaults in ``tax_engine``.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from fincontrols.models.payroll import PayeTaxBand, PayrollStatutoryRate
from fincontrols.services.tax_engine import DEFAULT_TAX_POLICY, PayeBand, TaxPolicy

logger = structlog.get_logger()


async def load_tax_policy(session: AsyncSession, tenant_id: str) -> TaxPolicy:
    bands_result = await session.execute(
        select(PayeTaxBand)
        .where(
            PayeTaxBand.tenant_id == tenant_id,
            PayeTaxBand.is_active == True,  # noqa: E712
        )
        .order_by(PayeTaxBand.band_order)
    )
    band_rows = list(bands_result.scalars().all())

    rates_result = await session.execute(
        select(PayrollStatutoryRate).where(
            PayrollStatutoryRate.tenant_id == tenant_id,
            PayrollStatutoryRate.is_active == True,  # noqa: E712
        )
    )
    rates = {r.rate_type: r for r in rates_result.scalars().all()}

    paye_bands = DEFAULT_TAX_POLICY.paye_bands
    if band_rows:
        paye_bands = tuple(
            PayeBand(
                min_amount=Decimal(b.min_amount),
                max_amount=Decimal(b.max_amount) if b.max_amount is not None else None,
                rate=Decimal(b.rate),
            )
            for b in band_rows
        )

    napsa_rate = DEFAULT_TAX_POLICY.napsa_rate
    napsa_ceiling = DEFAULT_TAX_POLICY.napsa_ceiling
    napsa = rates.get("napsa")
    if napsa is not None:
        napsa_rate = Decimal(napsa.employee_rate)
        if napsa.ceiling_amount is not None:
            napsa_ceiling = Decimal(napsa.ceiling_amount)

    nhima_rate = DEFAULT_TAX_POLICY.nhima_rate
    nhima_cap = DEFAULT_TAX_POLICY.nhima_cap
    nhima = rates.get("nhima")
    if nhima is not None:
        nhima_rate = Decimal(nhima.employee_rate)
        if nhima.contribution_cap is not None:
            nhima_cap = Decimal(nhima.contribution_cap)

    policy = TaxPolicy(
        paye_bands=paye_bands,
        napsa_rate=napsa_rate,
        napsa_ceiling=napsa_ceiling,
        nhima_rate=nhima_rate,
        nhima_cap=nhima_cap,
    )
    logger.debug(
        "tax_policy_loaded",
        tenant_id=str(tenant_id),
        custom_bands=bool(band_rows),
        custom_rates=sorted(rates),
    )
    return policy
