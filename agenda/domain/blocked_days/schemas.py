"""Blocked day schemas - Request/response models"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_date_string


class BlockedDayCreate(BaseModel):
    date: str
    reason: Optional[str] = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        return validate_date_string(v)


class BlockedDayUpdate(BaseModel):
    reason: Optional[str] = None


class BlockedDayResponse(BaseModel):
    id: str
    date: str
    reason: Optional[str] = None
    createdAt: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_model(cls, blocked_day) -> "BlockedDayResponse":
        return cls(
            id=blocked_day.id,
            date=blocked_day.date.isoformat(),
            reason=blocked_day.reason,
            createdAt=blocked_day.created_at,
        )


class BlockedDayCheckResponse(BaseModel):
    date: str
    isBlocked: bool
