import json, pathlib
import pytest, respx, httpx
from clinic_scheduler.client import HttpRecordStore
from clinic_scheduler.conflicts import check_conflicts
from clinic_scheduler.models import Appointment, ConflictType

FIX = pathlib.Path(__file__).parent / "fixtures"
TOKEN_RESP = {"access_token": "fake", "expires_in": 3600}
BASE = "https://records.test"


def make_store():
    # dummy credentials so httpx.BasicAuth doesn't choke during mocked calls
    return HttpRecordStore(
        base_url=f"{BASE}/api",
        token_url=f"{BASE}/api/oauth2/token",
        client_id="dummy",
        client_secret="dummy",
    )


@pytest.mark.asyncio
async def test_get_appointments_by_date_normalizes_legacy_rows():
    bundle = json.loads((FIX / "appointments_by_date.json").read_text())
    with respx.mock(base_url=BASE) as m:
        m.post("/api/oauth2/token").respond(200, json=TOKEN_RESP)
        route = m.get("/api/appointments").respond(200, json=bundle)

        appts = await make_store().get_appointments_by_date("2024-03-15")

        assert route.calls.last.request.url.params["date"] == "2024-03-15"
        assert route.calls.last.request.headers["Authorization"] == "Bearer fake"
    assert [a.id for a in appts] == ["appt-123", "appt-legacy", "appt-cancelled"]
    legacy = appts[1]
    assert (legacy.start_time, legacy.end_time) == ("15:00", "16:00")


@pytest.mark.asyncio
async def test_token_is_cached_between_calls():
    bundle = json.loads((FIX / "rooms.json").read_text())
    with respx.mock(base_url=BASE) as m:
        token = m.post("/api/oauth2/token").respond(200, json=TOKEN_RESP)
        m.get("/api/rooms").respond(200, json=bundle)

        store = make_store()
        await store.get_all_rooms()
        await store.get_all_rooms()

        assert token.call_count == 1


@pytest.mark.asyncio
async def test_available_rooms_derived_from_rooms_and_appointments():
    with respx.mock(base_url=BASE) as m:
        m.post("/api/oauth2/token").respond(200, json=TOKEN_RESP)
        m.get("/api/rooms").respond(200, json=json.loads((FIX / "rooms.json").read_text()))
        m.get("/api/appointments").respond(
            200, json=json.loads((FIX / "appointments_by_date.json").read_text())
        )

        store = make_store()
        at_ten = await store.get_available_rooms("2024-03-15", "10:00")
        at_ten_editing = await store.get_available_rooms("2024-03-15", "10:00", "appt-123")
        at_noon = await store.get_available_rooms("2024-03-15", "12:00")

    # C is switched off; A is taken at 10:00; the cancelled noon booking frees B
    assert [r.id for r in at_ten] == ["B"]
    assert [r.id for r in at_ten_editing] == ["A", "B"]
    assert [r.id for r in at_noon] == ["A", "B"]


@pytest.mark.asyncio
async def test_get_appointment_missing_returns_none():
    with respx.mock(base_url=BASE) as m:
        m.post("/api/oauth2/token").respond(200, json=TOKEN_RESP)
        m.get("/api/appointments/nope").respond(404, json={"detail": "not found"})

        assert await make_store().get_appointment("nope") is None


@pytest.mark.asyncio
async def test_save_appointment_puts_camel_case_body():
    appt = Appointment(
        id="appt-9",
        appointment_date="2024-03-15",
        start_time="14:00",
        end_time="15:00",
        room_id="A",
        psychologist_email="dr@x.com",
        patient_name="Ana",
    )
    with respx.mock(base_url=BASE) as m:
        m.post("/api/oauth2/token").respond(200, json=TOKEN_RESP)
        route = m.put("/api/appointments/appt-9").respond(200, json={})

        await make_store().save_appointment(appt)

        body = json.loads(route.calls.last.request.content)
    assert body["startTime"] == "14:00"
    assert body["roomId"] == "A"
    assert "roomName" not in body


@pytest.mark.asyncio
async def test_backend_outage_makes_detector_fail_closed():
    with respx.mock(base_url=BASE) as m:
        m.post("/api/oauth2/token").respond(200, json=TOKEN_RESP)
        m.get("/api/appointments").respond(503)

        result = await check_conflicts(make_store(), "2024-03-15", "10:00", "11:00", "dr@x.com", "A", "Ana")

    assert result.has_conflicts
    assert result.conflicts[0].type is ConflictType.TIME_OVERLAP


@pytest.mark.asyncio
async def test_token_failure_raises():
    with respx.mock(base_url=BASE) as m:
        m.post("/api/oauth2/token").respond(401)

        with pytest.raises(httpx.HTTPStatusError):
            await make_store().get_all_rooms()
