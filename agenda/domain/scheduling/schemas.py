"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_date_string, validate_local_time
from .durations import duration_of
from .statuses import EventType, Frequency
from .time_calculator import date_of, format_date, local_time_of


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc)


class DateTimeInput(BaseModel):
    """Base for requests addressed by civil date and local time"""

    date: str
    time: str

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        return validate_date_string(v)

    @field_validator("time")
    @classmethod
    def validate_time(cls, v):
        return validate_local_time(v)


class SlotCreate(DateTimeInput):
    """
    Schema for creating a slot

    For personal activities `status` carries the activity label and
    `priceCategory` the duration category (30m, 1h, 1h30, 2h).
    """

    eventType: EventType
    priceCategory: Optional[str] = None
    price: Optional[int] = None
    status: Optional[str] = None
    patientId: Optional[str] = None
    patientName: Optional[str] = None
    patientPhone: Optional[str] = None
    patientEmail: Optional[str] = None


class SlotUpdate(BaseModel):
    """Partial update; only fields present in the request are applied"""

    eventType: Optional[EventType] = None
    priceCategory: Optional[str] = None
    price: Optional[int] = None
    status: Optional[str] = None
    personalActivity: Optional[str] = None
    patientId: Optional[str] = None
    flowStatus: Optional[str] = None
    contractId: Optional[str] = None
    isPaid: Optional[bool] = None
    isInaugural: Optional[bool] = None
    reminderOneHour: Optional[bool] = None
    reminderTwentyFourHours: Optional[bool] = None
    patientName: Optional[str] = None
    patientPhone: Optional[str] = None
    patientEmail: Optional[str] = None
    privacyTermsAccepted: Optional[bool] = None


class DoubleSlotCreate(DateTimeInput):
    slot1Type: EventType
    slot2Type: EventType
    priceCategory: Optional[str] = None
    status: Optional[str] = None  # activity label for personal halves


class BulkPersonalItem(DateTimeInput):
    activity: Optional[str] = None
    duration: str = "30m"


class BulkPersonalCreate(BaseModel):
    slots: list[BulkPersonalItem] = Field(min_length=1)


class ReserveRequest(BaseModel):
    patientName: str = Field(min_length=1)
    patientPhone: Optional[str] = None


class SendFlowRequest(BaseModel):
    patientName: str = Field(min_length=1)
    patientPhone: Optional[str] = None


class ChangeTimeRequest(BaseModel):
    newDate: str
    newTime: str

    @field_validator("newDate")
    @classmethod
    def validate_date(cls, v):
        return validate_date_string(v)

    @field_validator("newTime")
    @classmethod
    def validate_time(cls, v):
        return validate_local_time(v)


class BlockDayRequest(BaseModel):
    date: str

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        return validate_date_string(v)


class BlockDayResponse(BaseModel):
    deletedCount: int
    keptCount: int


# ============================================================================
# RECURRENCE
# ============================================================================


class RemindersInput(BaseModel):
    oneHour: bool = False
    twentyFourHours: bool = False


class RecurringSlotItem(DateTimeInput):
    pass


class RecurringPreviewRequest(BaseModel):
    originalSlotId: str
    frequency: Frequency
    occurrenceCount: int = Field(1, ge=1, le=104)
    skipDates: list[str] = []

    @field_validator("skipDates")
    @classmethod
    def validate_skip_dates(cls, v):
        return [validate_date_string(d) for d in v]


class RecurringCreateRequest(RecurringPreviewRequest):
    """
    Schema for materializing a recurring series

    Targets come from `slots` when given, else from `dates` at the
    original time, else from frequency stepping.
    """

    slots: Optional[list[RecurringSlotItem]] = None
    dates: Optional[list[str]] = None
    patientName: Optional[str] = None
    patientPhone: Optional[str] = None
    patientEmail: Optional[str] = None
    payments: dict[str, bool] = {}
    inaugurals: dict[str, bool] = {}
    reminders: Optional[RemindersInput] = None

    @field_validator("dates")
    @classmethod
    def validate_dates(cls, v):
        if v is None:
            return v
        return [validate_date_string(d) for d in v]


class RecurringConflict(BaseModel):
    date: str
    time: str
    reason: str


class RecurringCreateResponse(BaseModel):
    createdCount: int
    conflicts: list[RecurringConflict]
    contractId: str
    contractShortId: str


class PreviewEntry(BaseModel):
    date: str
    status: Literal["available", "occupied"]
    details: Optional[str] = None


class RecurringPreviewResponse(BaseModel):
    preview: list[PreviewEntry]
    hasPreviousContracts: bool


# ============================================================================
# RESPONSES
# ============================================================================


class PatientSummary(BaseModel):
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    privacyTermsAccepted: bool = False


class SlotResponse(BaseModel):
    """Schema for slot response; date/time are civil (UTC-3) projections of startTime"""

    id: str
    date: str
    time: str
    startTime: datetime
    endTime: datetime
    durationMinutes: int
    eventType: Optional[str] = None
    priceCategory: Optional[str] = None
    price: Optional[int] = None
    status: str
    personalActivity: Optional[str] = None
    patientId: Optional[str] = None
    contractId: Optional[str] = None
    siblingOrder: int = 0
    flowStatus: Optional[str] = None
    isPaid: bool = False
    isInaugural: bool = False
    reminderOneHour: bool = False
    reminderTwentyFourHours: bool = False
    patient: Optional[PatientSummary] = None
    isLastSlotOfContract: bool = False
    needsRenewal: bool = False

    @classmethod
    def from_slot(cls, slot, is_last_slot_of_contract: bool = False, needs_renewal: bool = False) -> "SlotResponse":
        patient = None
        if slot.patient is not None:
            patient = PatientSummary(
                name=slot.patient.name,
                phone=slot.patient.phone,
                email=slot.patient.email,
                privacyTermsAccepted=bool(slot.patient.privacy_terms_accepted),
            )
        return cls(
            id=slot.id,
            date=format_date(date_of(slot.start_time)),
            time=local_time_of(slot.start_time),
            startTime=_as_utc(slot.start_time),
            endTime=_as_utc(slot.end_time),
            durationMinutes=duration_of(slot),
            eventType=slot.event_type,
            priceCategory=slot.price_category,
            price=slot.price,
            status=slot.status,
            personalActivity=slot.personal_activity,
            patientId=slot.patient_id,
            contractId=slot.contract_id,
            siblingOrder=slot.sibling_order or 0,
            flowStatus=slot.flow_status,
            isPaid=bool(slot.is_paid),
            isInaugural=bool(slot.is_inaugural),
            reminderOneHour=bool(slot.reminder_one_hour),
            reminderTwentyFourHours=bool(slot.reminder_twenty_four_hours),
            patient=patient,
            isLastSlotOfContract=is_last_slot_of_contract,
            needsRenewal=needs_renewal,
        )


class BulkPersonalFailure(BaseModel):
    slot: BulkPersonalItem
    error: str


class BulkPersonalResponse(BaseModel):
    created: list[SlotResponse]
    failed: list[BulkPersonalFailure]


class PreviousContractsResponse(BaseModel):
    hasPreviousContracts: bool


class PendingContract(BaseModel):
    contractId: str
    totalDebt: int
    unpaidCount: int
    firstStartTime: Optional[datetime] = None


class OriginalSessionResponse(BaseModel):
    contractId: str
    slotId: str
    startTime: datetime
