"""HTTP surface: routing, status codes and error mapping."""

import pytest
from fastapi.testclient import TestClient

from agenda.database import get_db
from agenda.domain.scheduling.router import get_slot_service
from agenda.domain.scheduling.service import SlotService
from agenda.main import app
from tests.fakes.fake_flow_notifier import FakeFlowNotifier


@pytest.fixture
def notifier():
    return FakeFlowNotifier()


@pytest.fixture
def client(session_factory, notifier):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    def override_slot_service():
        db = session_factory()
        try:
            yield SlotService(db, notifier=notifier)
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_slot_service] = override_slot_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def create(client, time="10:00", **extra):
    body = {"date": "2026-08-10", "time": time, "eventType": "online", "priceCategory": "padrao"}
    body.update(extra)
    return client.post("/slots", json=body)


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "healthy"}


def test_create_and_list(client) -> None:
    response = create(client)
    assert response.status_code == 201
    created = response.json()
    assert created["date"] == "2026-08-10"
    assert created["time"] == "10:00"
    assert created["startTime"].startswith("2026-08-10T13:00:00")
    assert created["durationMinutes"] == 60
    assert created["status"] == "Vago"

    listed = client.get("/slots", params={"startDate": "2026-08-10", "endDate": "2026-08-10"}).json()
    assert [s["id"] for s in listed] == [created["id"]]


def test_conflict_maps_to_409(client) -> None:
    create(client)

    response = create(client, time="10:30")

    assert response.status_code == 409
    assert "10:00" in response.json()["detail"]


def test_blocked_day_maps_to_409(client) -> None:
    assert client.post("/slots/block-day", json={"date": "2026-08-10"}).json() == {
        "deletedCount": 0,
        "keptCount": 0,
    }

    response = create(client)

    assert response.status_code == 409
    assert "bloqueado" in response.json()["detail"]


def test_unknown_slot_maps_to_404(client) -> None:
    response = client.post("/slots/missing/confirm")
    assert response.status_code == 404
    assert response.json() == {"detail": "Slot não encontrado"}


def test_invalid_date_is_rejected(client) -> None:
    response = client.post("/slots", json={"date": "10/08/2026", "time": "10:00", "eventType": "online"})
    assert response.status_code == 422


def test_reserve_confirm_and_delete(client) -> None:
    slot_id = create(client).json()["id"]

    reserved = client.post(f"/slots/{slot_id}/reserve", json={"patientName": "Lia", "patientPhone": "11911110000"})
    assert reserved.json()["status"] == "RESERVADO"
    assert reserved.json()["patient"]["name"] == "Lia"

    confirmed = client.post(f"/slots/{slot_id}/confirm")
    assert confirmed.json()["status"] == "CONFIRMADO"

    assert client.delete(f"/slots/{slot_id}").status_code == 204
    assert client.get("/slots", params={"startDate": "2026-08-10", "endDate": "2026-08-10"}).json() == []


def test_change_time_returns_new_slot(client) -> None:
    slot_id = create(client).json()["id"]

    response = client.put(f"/slots/{slot_id}/change-time", json={"newDate": "2026-08-11", "newTime": "14:30"})

    assert response.status_code == 200
    moved = response.json()
    assert moved["id"] != slot_id
    assert (moved["date"], moved["time"]) == ("2026-08-11", "14:30")


def test_send_flow_uses_notifier(client, notifier) -> None:
    slot_id = create(client).json()["id"]

    response = client.post(f"/slots/{slot_id}/send-flow", json={"patientName": "Lia"})

    assert response.json()["flowStatus"] == "Enviado"
    assert notifier.payloads[0]["slotId"] == slot_id


def test_recurring_contract_and_renewal_flow(client) -> None:
    slot_id = create(client, status="RESERVADO", patientName="Davi", patientPhone="11955550000").json()["id"]

    created = client.post(
        "/slots/recurring",
        json={"originalSlotId": slot_id, "frequency": "weekly", "occurrenceCount": 2},
    )
    assert created.status_code == 201
    contract_id = created.json()["contractId"]
    assert created.json()["createdCount"] == 2

    sessions = client.get(f"/contracts/{contract_id}/slots").json()
    assert [s["date"] for s in sessions] == ["2026-08-10", "2026-08-17"]

    toggled = client.patch(f"/contracts/{contract_id}/auto-renewal", json={"autoRenewalEnabled": True})
    assert toggled.json() == {"success": True, "autoRenewalEnabled": True}

    preview = client.get(f"/renewals/preview/{contract_id}").json()
    assert preview["suggestedDate"] == "2026-08-24"

    renewed = client.post(f"/renewals/direct/{contract_id}", json={})
    assert renewed.status_code == 200
    assert renewed.json()["totalCreated"] == 2

    pending = client.get("/slots/pending-contracts", params={"phone": "11955550000"}).json()
    assert len(pending["pendingContracts"]) == 2


def test_renewal_preview_for_unknown_contract(client) -> None:
    response = client.get("/renewals/preview/missing")
    assert response.status_code == 404
    assert response.json() == {"detail": "Contrato não encontrado"}


def test_process_renewals_returns_summary(client) -> None:
    summary = client.post("/renewals/process").json()
    assert summary["processedCount"] == 0
    assert summary["errors"] == []
