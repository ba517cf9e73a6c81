import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func

from .database import Base
from .domain.scheduling.statuses import normalize_event_type, normalize_status


def generate_id():
    """Generate an opaque row identifier"""
    return str(uuid.uuid4())


class Patient(Base):
    __tablename__ = "patients"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True, index=True)  # exact-match lookup key
    email = Column(String(255), nullable=True, index=True)  # fallback lookup key
    privacy_terms_accepted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    slots = relationship("Slot", back_populates="patient")


class Contract(Base):
    """
    A recurring series of slots.

    The contract end is not stored: it is the max end_time over its slots,
    so it grows as renewals or edits add sessions.
    """

    __tablename__ = "contracts"

    id = Column(String(36), primary_key=True, default=generate_id)
    short_id = Column(String(5), nullable=False, index=True)  # 5-digit code shown to humans
    frequency = Column(String(20), nullable=False, default="weekly")  # weekly, biweekly, monthly
    auto_renewal_enabled = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    slots = relationship("Slot", back_populates="contract")


class Slot(Base):
    """
    One bookable calendar unit.

    start_time/end_time are naive UTC instants and are authoritative; the
    civil date and time shown in the calendar are derived from them.

    Status workflow:
    Vago -> AGUARDANDO / RESERVADO / INDISPONIVEL -> CONFIRMADO / CONTRATADO
    Personal activities: PENDENTE -> CONCLUIDO / NAO_REALIZADO
    """

    __tablename__ = "time_slots"
    __table_args__ = (Index("ix_time_slots_start_sibling", "start_time", "sibling_order"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)

    event_type = Column(String(20), nullable=True)  # online, presential, personal; null = vacant
    price_category = Column(String(20), nullable=True)  # padrao, promocional, emergencial
    price = Column(Integer, nullable=True)  # cents
    status = Column(String(50), nullable=False, default="Vago")
    personal_activity = Column(String(255), nullable=True)  # label only, never a duration

    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=True, index=True)
    contract_id = Column(
        String(36), ForeignKey("contracts.id", ondelete="SET NULL"), nullable=True, index=True
    )
    sibling_order = Column(Integer, nullable=False, default=0)  # rank among slots at the same start

    flow_status = Column(String(20), nullable=True)  # "Enviado" once the flow webhook fired
    is_paid = Column(Boolean, default=False, nullable=False)
    is_inaugural = Column(Boolean, default=False, nullable=False)
    reminder_one_hour = Column(Boolean, default=False, nullable=False)
    reminder_twenty_four_hours = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    patient = relationship("Patient", back_populates="slots")
    contract = relationship("Contract", back_populates="slots")

    @validates("status")
    def _normalize_status(self, _key, value):
        return normalize_status(value)

    @validates("event_type")
    def _normalize_event_type(self, _key, value):
        return normalize_event_type(value)


class BlockedDay(Base):
    __tablename__ = "blocked_days"

    id = Column(String(36), primary_key=True, default=generate_id)
    date = Column(Date, nullable=False, unique=True, index=True)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
