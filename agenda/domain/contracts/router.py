"""Contract router - FastAPI endpoints for contracts and renewals"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ...services.renewal_automation import run_daily_renewal_job
from ..scheduling.schemas import SlotResponse
from .renewal_service import RenewalService
from .schemas import (
    AutoRenewalResponse,
    AutoRenewalUpdate,
    ContractUpdate,
    ContractUpdateResponse,
    RenewalDirectRequest,
    RenewalDirectResponse,
    RenewalJobSummary,
    RenewalPreviewResponse,
)
from .service import ContractService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contracts", tags=["Contracts"])
renewals_router = APIRouter(prefix="/renewals", tags=["Renewals"])


def get_contract_service(db: Session = Depends(get_db)) -> ContractService:
    """Dependency injection for ContractService"""
    return ContractService(db)


def get_renewal_service(db: Session = Depends(get_db)) -> RenewalService:
    """Dependency injection for RenewalService"""
    return RenewalService(db)


@router.get("/{contract_id}/slots", response_model=list[SlotResponse])
async def get_contract_slots(
    contract_id: str, service: ContractService = Depends(get_contract_service)
):
    """Get all sessions of a contract ordered by start"""
    return [SlotResponse.from_slot(slot) for slot in service.get_contract_slots(contract_id)]


@router.put("/{contract_id}", response_model=ContractUpdateResponse)
async def update_contract(
    contract_id: str,
    data: ContractUpdate,
    service: ContractService = Depends(get_contract_service),
):
    """Update patient data, payments, inaugural flags and reminders of a contract"""
    service.update_contract(contract_id, data)
    return ContractUpdateResponse(success=True, message="Contrato atualizado com sucesso")


@router.patch("/{contract_id}/auto-renewal", response_model=AutoRenewalResponse)
async def set_auto_renewal(
    contract_id: str,
    data: AutoRenewalUpdate,
    service: ContractService = Depends(get_contract_service),
):
    return service.set_auto_renewal(contract_id, data.autoRenewalEnabled)


# ============================================================================
# RENEWALS
# ============================================================================


@renewals_router.get("/preview/{contract_id}", response_model=RenewalPreviewResponse)
async def get_renewal_preview(
    contract_id: str, service: RenewalService = Depends(get_renewal_service)
):
    """Suggested dates and times for renewing a contract"""
    return service.get_renewal_preview(contract_id)


@renewals_router.post("/process", response_model=RenewalJobSummary)
async def process_renewals(service: RenewalService = Depends(get_renewal_service)):
    """Run the daily renewal job now"""
    logger.info("🔄 Manual renewal run requested")
    return run_daily_renewal_job(service.db, renewal_service=service)


@renewals_router.post("/direct/{contract_id}", response_model=RenewalDirectResponse)
async def confirm_renewal_direct(
    contract_id: str,
    data: RenewalDirectRequest,
    service: RenewalService = Depends(get_renewal_service),
):
    """Renew a contract now, optionally pinning the first session"""
    return service.confirm_renewal_direct(contract_id, data.adjustedDate, data.adjustedTime)
