"""Contract domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_date_string, validate_local_time
from ..scheduling.schemas import RemindersInput


class ContractUpdate(BaseModel):
    """
    Schema for updating a contract

    Per-date maps are keyed by civil date (YYYY-MM-DD) of each session.
    """

    patientName: Optional[str] = None
    patientPhone: Optional[str] = None
    patientEmail: Optional[str] = None
    payments: Optional[dict[str, bool]] = None
    inaugurals: Optional[dict[str, bool]] = None
    reminders: Optional[RemindersInput] = None
    remindersPerDate: Optional[dict[str, RemindersInput]] = None


class ContractUpdateResponse(BaseModel):
    success: bool
    message: str


class AutoRenewalUpdate(BaseModel):
    autoRenewalEnabled: bool


class AutoRenewalResponse(BaseModel):
    success: bool
    autoRenewalEnabled: bool


# ============================================================================
# RENEWALS
# ============================================================================


class RenewalSession(BaseModel):
    date: str
    time: str
    originalTime: str
    timeWasChanged: bool
    noAvailability: bool = False


class RenewalPreviewResponse(BaseModel):
    suggestedDate: Optional[str] = None
    suggestedTime: Optional[str] = None
    originalTime: str
    timeWasChanged: bool
    noAvailability: bool
    patientName: Optional[str] = None
    patientPhone: Optional[str] = None
    patientEmail: Optional[str] = None
    frequency: str
    sessionsCount: int
    sessions: list[RenewalSession]


class RenewalDirectRequest(BaseModel):
    """Optional pin for the first renewed session"""

    adjustedDate: Optional[str] = None
    adjustedTime: Optional[str] = None

    @field_validator("adjustedDate")
    @classmethod
    def validate_date(cls, v):
        if v is None:
            return v
        return validate_date_string(v)

    @field_validator("adjustedTime")
    @classmethod
    def validate_time(cls, v):
        if v is None:
            return v
        return validate_local_time(v)


class RenewedSession(BaseModel):
    date: str
    time: str
    originalTime: str
    timeWasChanged: bool
    startTime: datetime
    endTime: datetime


class RenewalDirectResponse(BaseModel):
    success: bool
    slotIds: list[str]
    sessions: list[RenewedSession]
    totalCreated: int
    newContractId: str
    newContractShortId: str


class RenewalJobSummary(BaseModel):
    processedCount: int
    renewedCount: int
    skippedAlreadyRenewed: int
    skippedNoSlots: int
    totalSlotsCreated: int
    errors: list[str]
