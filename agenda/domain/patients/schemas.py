"""Patient schemas - Request/response models"""

from typing import Optional

from pydantic import BaseModel, field_validator


class PatientUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    privacyTermsAccepted: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        if v and "@" not in v:
            raise ValueError("Email inválido")
        return v


class PatientResponse(BaseModel):
    id: str
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    privacyTermsAccepted: bool = False

    @classmethod
    def from_model(cls, patient) -> "PatientResponse":
        return cls(
            id=patient.id,
            name=patient.name,
            phone=patient.phone,
            email=patient.email,
            privacyTermsAccepted=bool(patient.privacy_terms_accepted),
        )
