"""Scheduling router - FastAPI endpoints for calendar slots"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...services.notification_service import get_flow_notifier
from ...shared.validators import DATE_REGEX
from ..contracts.service import ContractService
from .recurrence_service import RecurrenceService
from .schemas import (
    BlockDayRequest,
    BlockDayResponse,
    BulkPersonalCreate,
    BulkPersonalResponse,
    ChangeTimeRequest,
    DoubleSlotCreate,
    OriginalSessionResponse,
    PreviousContractsResponse,
    RecurringCreateRequest,
    RecurringCreateResponse,
    RecurringPreviewRequest,
    RecurringPreviewResponse,
    ReserveRequest,
    SendFlowRequest,
    SlotCreate,
    SlotResponse,
    SlotUpdate,
)
from .service import SlotService

router = APIRouter(prefix="/slots", tags=["Slots"])


def get_slot_service(db: Session = Depends(get_db)) -> SlotService:
    """Dependency injection for SlotService"""
    return SlotService(db, notifier=get_flow_notifier())


def get_recurrence_service(db: Session = Depends(get_db)) -> RecurrenceService:
    """Dependency injection for RecurrenceService"""
    return RecurrenceService(db)


def get_contract_service(db: Session = Depends(get_db)) -> ContractService:
    return ContractService(db)


# ============================================================================
# COLLECTION ENDPOINTS (registered before /{slot_id})
# ============================================================================


@router.get("", response_model=list[SlotResponse])
async def get_slots(
    startDate: str = Query(..., pattern=DATE_REGEX),
    endDate: str = Query(..., pattern=DATE_REGEX),
    service: SlotService = Depends(get_slot_service),
):
    """
    Get slots whose civil date is within [startDate, endDate]

    Each slot is flagged when it is the last of its contract and when that
    contract is due for renewal this week.
    """
    return [
        SlotResponse.from_slot(slot, is_last, needs_renewal)
        for slot, is_last, needs_renewal in service.get_slots(startDate, endDate)
    ]


@router.post("", response_model=SlotResponse, status_code=201)
async def create_slot(data: SlotCreate, service: SlotService = Depends(get_slot_service)):
    return SlotResponse.from_slot(service.create_slot(data))


@router.post("/double", response_model=list[SlotResponse], status_code=201)
async def create_double_slot(
    data: DoubleSlotCreate, service: SlotService = Depends(get_slot_service)
):
    """Create two sibling slots sharing the same start"""
    return [SlotResponse.from_slot(slot) for slot in service.create_double_slot(data)]


@router.post("/bulk-personal", response_model=BulkPersonalResponse, status_code=201)
async def create_bulk_personal_slots(
    data: BulkPersonalCreate, service: SlotService = Depends(get_slot_service)
):
    created, failed = service.create_bulk_personal_slots(data.slots)
    return BulkPersonalResponse(
        created=[SlotResponse.from_slot(slot) for slot in created],
        failed=failed,
    )


@router.post("/recurring", response_model=RecurringCreateResponse, status_code=201)
async def create_recurring_slots(
    data: RecurringCreateRequest, service: RecurrenceService = Depends(get_recurrence_service)
):
    """Expand an original slot into a recurring contract"""
    return service.create_recurring(data)


@router.post("/recurring/preview", response_model=RecurringPreviewResponse)
async def preview_recurring_slots(
    data: RecurringPreviewRequest, service: RecurrenceService = Depends(get_recurrence_service)
):
    return service.preview_recurring(
        data.originalSlotId, data.frequency.value, data.occurrenceCount, data.skipDates
    )


@router.get("/check-previous-contracts", response_model=PreviousContractsResponse)
async def check_previous_contracts(
    phone: Optional[str] = None,
    email: Optional[str] = None,
    service: ContractService = Depends(get_contract_service),
):
    return PreviousContractsResponse(
        hasPreviousContracts=service.has_previous_contracts_by_contact(phone, email)
    )


@router.get("/pending-contracts")
async def get_pending_contracts(
    phone: Optional[str] = None,
    email: Optional[str] = None,
    service: ContractService = Depends(get_contract_service),
):
    """Contracts of a patient with unpaid sessions"""
    return {"pendingContracts": service.get_pending_contracts(phone, email)}


@router.get("/original-session", response_model=Optional[OriginalSessionResponse])
async def get_original_session(
    patientId: str, service: ContractService = Depends(get_contract_service)
):
    return service.get_original_session(patientId)


@router.post("/block-day", response_model=BlockDayResponse)
async def block_day(data: BlockDayRequest, service: SlotService = Depends(get_slot_service)):
    """Delete free slots of a day and mark it blocked"""
    return service.block_day(data.date)


# ============================================================================
# SINGLE SLOT ENDPOINTS
# ============================================================================


@router.put("/{slot_id}", response_model=SlotResponse)
async def update_slot(
    slot_id: str, data: SlotUpdate, service: SlotService = Depends(get_slot_service)
):
    return SlotResponse.from_slot(service.update_slot(slot_id, data))


@router.delete("/{slot_id}", status_code=204)
async def delete_slot(slot_id: str, service: SlotService = Depends(get_slot_service)):
    service.delete_slot(slot_id)


@router.put("/{slot_id}/change-time", response_model=SlotResponse)
async def change_slot_time(
    slot_id: str, data: ChangeTimeRequest, service: SlotService = Depends(get_slot_service)
):
    """Move a slot to another date/time; the moved slot gets a new id"""
    return SlotResponse.from_slot(service.change_slot_time(slot_id, data.newDate, data.newTime))


@router.post("/{slot_id}/reserve", response_model=SlotResponse)
async def reserve_slot(
    slot_id: str, data: ReserveRequest, service: SlotService = Depends(get_slot_service)
):
    return SlotResponse.from_slot(service.reserve_slot(slot_id, data.patientName, data.patientPhone))


@router.post("/{slot_id}/confirm", response_model=SlotResponse)
async def confirm_slot(slot_id: str, service: SlotService = Depends(get_slot_service)):
    return SlotResponse.from_slot(service.confirm_slot(slot_id))


@router.post("/{slot_id}/send-flow", response_model=SlotResponse)
async def send_flow(
    slot_id: str, data: SendFlowRequest, service: SlotService = Depends(get_slot_service)
):
    """Trigger the messaging flow for a slot and mark it as sent"""
    slot = await service.send_flow(slot_id, data.patientName, data.patientPhone)
    return SlotResponse.from_slot(slot)
