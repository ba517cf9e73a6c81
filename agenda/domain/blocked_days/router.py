"""Blocked day router - FastAPI endpoints for closing calendar days"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...shared.validators import DATE_REGEX
from .schemas import (
    BlockedDayCheckResponse,
    BlockedDayCreate,
    BlockedDayResponse,
    BlockedDayUpdate,
)
from .service import BlockedDayService

router = APIRouter(prefix="/blocked-days", tags=["Blocked Days"])


def get_blocked_day_service(db: Session = Depends(get_db)) -> BlockedDayService:
    """Dependency injection for BlockedDayService"""
    return BlockedDayService(db)


@router.get("/range", response_model=list[BlockedDayResponse])
async def list_blocked_days_in_range(
    startDate: str = Query(..., pattern=DATE_REGEX),
    endDate: str = Query(..., pattern=DATE_REGEX),
    service: BlockedDayService = Depends(get_blocked_day_service),
):
    """List blocked days between two dates (inclusive)"""
    days = service.list_range(startDate, endDate)
    return [BlockedDayResponse.from_model(day) for day in days]


@router.get("/check", response_model=BlockedDayCheckResponse)
async def check_day_blocked(
    date: str = Query(..., pattern=DATE_REGEX),
    service: BlockedDayService = Depends(get_blocked_day_service),
):
    return BlockedDayCheckResponse(date=date, isBlocked=service.is_blocked(date))


# Must be registered before /{blocked_day_id}
@router.delete("/unblock")
async def unblock_day(
    date: str = Query(..., pattern=DATE_REGEX),
    service: BlockedDayService = Depends(get_blocked_day_service),
):
    """Unblock a day by date"""
    deleted = service.unblock(date)
    return {"success": True, "date": date, "deleted": deleted}


@router.get("/{blocked_day_id}", response_model=BlockedDayResponse)
async def get_blocked_day(
    blocked_day_id: str, service: BlockedDayService = Depends(get_blocked_day_service)
):
    return BlockedDayResponse.from_model(service.get_blocked_day(blocked_day_id))


@router.post("", response_model=BlockedDayResponse, status_code=201)
async def create_blocked_day(
    data: BlockedDayCreate, service: BlockedDayService = Depends(get_blocked_day_service)
):
    """Block a day (new bookings on that date are rejected)"""
    return BlockedDayResponse.from_model(service.create(data.date, data.reason))


@router.put("/{blocked_day_id}", response_model=BlockedDayResponse)
async def update_blocked_day(
    blocked_day_id: str,
    data: BlockedDayUpdate,
    service: BlockedDayService = Depends(get_blocked_day_service),
):
    return BlockedDayResponse.from_model(service.update_reason(blocked_day_id, data.reason))


@router.delete("/{blocked_day_id}", status_code=204)
async def delete_blocked_day(
    blocked_day_id: str, service: BlockedDayService = Depends(get_blocked_day_service)
):
    service.delete(blocked_day_id)
