"""
Approvable record kinds: the closed set of entities an approval can gate.

Each kind maps a ``record_table`` name to its model. Models share the
``ApprovableMixin`` capability (``set_approval_status`` / ``set_locked``),
so the approval workflow never dispatches on arbitrary table names.
"""

from enum import Enum
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fincontrols.exceptions import ValidationError
from fincontrols.models.records import (
    ApprovableMixin,
    Bill,
    Expense,
    Invoice,
    JournalEntry,
)


class RecordKind(str, Enum):
    EXPENSE = "expenses"
    BILL = "bills"
    INVOICE = "invoices"
    JOURNAL_ENTRY = "journal_entries"

    @classmethod
    def parse(cls, record_table: str) -> "RecordKind":
        try:
            return cls(record_table)
        except ValueError:
            raise ValidationError(
                f"Records of type '{record_table}' cannot be sent for approval",
                code="UNKNOWN_RECORD_TABLE",
                details={"allowed": [k.value for k in cls]},
            )

    @property
    def model(self):
        return _MODELS[self]


_MODELS = {
    RecordKind.EXPENSE: Expense,
    RecordKind.BILL: Bill,
    RecordKind.INVOICE: Invoice,
    RecordKind.JOURNAL_ENTRY: JournalEntry,
}


async def get_record(
    session: AsyncSession,
    kind: RecordKind,
    record_id: str,
    tenant_id: str,
    for_update: bool = False,
) -> Optional[ApprovableMixin]:
    model = kind.model
    q = select(model).where(model.id == record_id, model.tenant_id == tenant_id)
    if for_update:
        q = q.with_for_update()
    result = await session.execute(q)
    return result.scalar_one_or_none()
