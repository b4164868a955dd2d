"""Central model registry: import all models so Alembic autodiscover works."""

from fincontrols.database import Base  # noqa: F401

from fincontrols.models.tenant import Tenant  # noqa: F401
from fincontrols.models.user import User  # noqa: F401
from fincontrols.models.approval import ApprovalWorkflow, ApprovalRequest  # noqa: F401
from fincontrols.models.records import Expense, Bill, Invoice, JournalEntry  # noqa: F401
from fincontrols.models.period_lock import PeriodLock  # noqa: F401
from fincontrols.models.notification import Notification  # noqa: F401
from fincontrols.models.payroll import PayeTaxBand, PayrollStatutoryRate  # noqa: F401
