"""Shared fixtures: an in-memory database and slot/patient/contract builders."""

from datetime import timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from agenda.database import Base
from agenda.domain.contracts.repository import ContractRepository
from agenda.domain.scheduling.repository import SlotRepository
from agenda.domain.scheduling.time_calculator import to_instant
from agenda.models import Patient


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_patient(db):
    def _make(name: str = "Maria Souza", phone: str | None = "11999990000", email: str | None = None):
        patient = Patient(name=name, phone=phone, email=email)
        db.add(patient)
        db.commit()
        db.refresh(patient)
        return patient

    return _make


@pytest.fixture
def make_contract(db):
    def _make(frequency: str = "weekly", auto_renewal_enabled: bool = False):
        return ContractRepository.create_contract(db, frequency, auto_renewal_enabled=auto_renewal_enabled)

    return _make


@pytest.fixture
def make_slot(db):
    """Insert a slot directly, bypassing overlap checks and cascades."""

    def _make(day: str, time: str, duration: int = 60, **fields):
        start = to_instant(day, time)
        fields.setdefault("status", "Vago")
        fields.setdefault("sibling_order", SlotRepository.next_sibling_order(db, start))
        return SlotRepository.create_slot(
            db,
            start_time=start,
            end_time=start + timedelta(minutes=duration),
            **fields,
        )

    return _make
