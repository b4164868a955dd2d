from datetime import date, datetime
from typing import Optional, Union
from pydantic import BaseModel, Field, model_validator


class DateValidationRequest(BaseModel):
    transaction_date: Union[datetime, date]


class LockDetailsResponse(BaseModel):
    period_start: date
    period_end: date
    lock_reason: Optional[str] = None


class DateValidationResponse(BaseModel):
    is_valid: bool
    is_locked: bool
    is_future_date: bool
    lock_details: Optional[LockDetailsResponse] = None
    message: str

    @classmethod
    def from_result(cls, r) -> "DateValidationResponse":
        details = None
        if r.lock_details is not None:
            details = LockDetailsResponse(
                period_start=r.lock_details.period_start,
                period_end=r.lock_details.period_end,
                lock_reason=r.lock_details.lock_reason,
            )
        return cls(
            is_valid=r.is_valid,
            is_locked=r.is_locked,
            is_future_date=r.is_future_date,
            lock_details=details,
            message=r.message,
        )


class PeriodLockCreate(BaseModel):
    period_start: date
    period_end: date
    period_type: str = Field("month", max_length=20)
    lock_reason: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def check_range(self):
        if self.period_start > self.period_end:
            raise ValueError("period_start must not be after period_end")
        return self


class PeriodLockResponse(BaseModel):
    id: str
    period_start: date
    period_end: date
    period_type: Optional[str] = None
    lock_reason: Optional[str] = None
    is_active: bool
    locked_by: str
    locked_at: Optional[datetime] = None
    unlocked_by: Optional[str] = None
    unlocked_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, lock) -> "PeriodLockResponse":
        return cls(
            id=str(lock.id),
            period_start=lock.period_start,
            period_end=lock.period_end,
            period_type=lock.period_type,
            lock_reason=lock.lock_reason,
            is_active=bool(lock.is_active),
            locked_by=str(lock.locked_by),
            locked_at=lock.locked_at,
            unlocked_by=str(lock.unlocked_by) if lock.unlocked_by else None,
            unlocked_at=lock.unlocked_at,
        )
