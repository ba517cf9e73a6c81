"""Patient router - FastAPI endpoints for patient records"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from .schemas import PatientResponse, PatientUpdate
from .service import PatientService

router = APIRouter(prefix="/patients", tags=["Patients"])


def get_patient_service(db: Session = Depends(get_db)) -> PatientService:
    """Dependency injection for PatientService"""
    return PatientService(db)


@router.get("/{patient_id}", response_model=PatientResponse)
async def get_patient(patient_id: str, service: PatientService = Depends(get_patient_service)):
    return PatientResponse.from_model(service.get_patient(patient_id))


@router.put("/{patient_id}", response_model=PatientResponse)
async def update_patient(
    patient_id: str,
    data: PatientUpdate,
    service: PatientService = Depends(get_patient_service),
):
    patient = service.update_patient(
        patient_id,
        name=data.name,
        phone=data.phone,
        email=data.email,
        privacy_terms_accepted=data.privacyTermsAccepted,
    )
    return PatientResponse.from_model(patient)
