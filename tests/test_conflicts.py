import pytest
from conftest import make_appt
from clinic_scheduler.conflicts import ConflictDetector, check_conflicts
from clinic_scheduler.models import ConflictType
from clinic_scheduler.store import InMemoryStore


class BrokenStore:
    async def get_appointments_by_date(self, date_iso):
        raise ConnectionError("records backend unreachable")


@pytest.mark.asyncio
async def test_triple_conflict_same_room_psychologist_patient(store):
    result = await check_conflicts(store, "2024-03-15", "10:30", "11:30", "dr@x.com", "A", "Ana")

    assert result.has_conflicts
    assert [c.type for c in result.conflicts] == [
        ConflictType.ROOM,
        ConflictType.PSYCHOLOGIST,
        ConflictType.PATIENT,
    ]
    assert all(c.conflicting_appointment.id == "appt-1" for c in result.conflicts)


@pytest.mark.asyncio
async def test_no_conflict_when_nothing_is_shared(store):
    result = await check_conflicts(store, "2024-03-15", "10:30", "11:30", "other@x.com", "B", "Bruno")

    assert not result.has_conflicts
    assert result.conflicts == []


@pytest.mark.asyncio
async def test_patient_name_compared_case_insensitively(store):
    result = await check_conflicts(store, "2024-03-15", "10:30", "11:30", "other@x.com", "B", "ANA")

    assert [c.type for c in result.conflicts] == [ConflictType.PATIENT]


@pytest.mark.asyncio
async def test_patient_name_is_not_trimmed(store):
    result = await check_conflicts(store, "2024-03-15", "10:30", "11:30", "other@x.com", "B", " Ana ")

    assert not result.has_conflicts


@pytest.mark.asyncio
async def test_empty_patient_name_skips_patient_check(store):
    result = await check_conflicts(store, "2024-03-15", "10:30", "11:30", "other@x.com", "B", "")

    assert not result.has_conflicts


@pytest.mark.asyncio
async def test_back_to_back_is_not_a_conflict(store):
    result = await check_conflicts(store, "2024-03-15", "11:00", "12:00", "dr@x.com", "A", "Ana")

    assert not result.has_conflicts


@pytest.mark.asyncio
async def test_other_dates_are_ignored(store):
    result = await check_conflicts(store, "2024-03-16", "10:00", "11:00", "dr@x.com", "A", "Ana")

    assert not result.has_conflicts


@pytest.mark.asyncio
async def test_excluding_itself_yields_no_conflict(store):
    result = await check_conflicts(
        store, "2024-03-15", "10:00", "11:00", "dr@x.com", "A", "Ana", exclude_appointment_id="appt-1"
    )

    assert not result.has_conflicts


@pytest.mark.asyncio
async def test_cancelled_appointments_never_conflict():
    store = InMemoryStore(appointments=[make_appt(status="cancelled")])

    result = await check_conflicts(store, "2024-03-15", "10:00", "11:00", "dr@x.com", "A", "Ana")

    assert not result.has_conflicts


@pytest.mark.asyncio
async def test_legacy_record_blocks_its_implicit_hour():
    legacy = make_appt(startTime=None, endTime=None, appointmentTime="10:00")
    store = InMemoryStore(appointments=[legacy])

    result = await check_conflicts(store, "2024-03-15", "10:30", "10:45", "other@x.com", "A")

    assert [c.type for c in result.conflicts] == [ConflictType.ROOM]
    assert result.conflicts[0].details["conflictTime"] == "10:00 - 11:00"


@pytest.mark.asyncio
async def test_each_overlapping_appointment_reported():
    store = InMemoryStore(
        appointments=[
            make_appt(),
            make_appt(id="appt-2", startTime="11:00", endTime="12:00", patientName="Bea"),
        ]
    )

    result = await check_conflicts(store, "2024-03-15", "10:30", "11:30", "dr@x.com", "C", "Carla")

    assert [c.conflicting_appointment.id for c in result.conflicts] == ["appt-1", "appt-2"]
    assert {c.type for c in result.conflicts} == {ConflictType.PSYCHOLOGIST}


@pytest.mark.asyncio
async def test_room_conflict_details(store):
    result = await ConflictDetector(store).check("2024-03-15", "10:30", "11:30", "other@x.com", "A")

    (conflict,) = result.conflicts
    assert conflict.type is ConflictType.ROOM
    assert conflict.details["requestedTime"] == "10:30 - 11:30"
    assert conflict.details["conflictTime"] == "10:00 - 11:00"
    assert conflict.details["conflictingPatient"] == "Ana"
    assert conflict.details["conflictingPsychologist"] == "dr@x.com"
    assert conflict.details["roomName"] == "Room A"
    assert conflict.details["nextAvailableTime"] == "11:01"


@pytest.mark.asyncio
async def test_store_error_fails_closed():
    result = await check_conflicts(BrokenStore(), "2024-03-15", "10:00", "11:00", "dr@x.com", "A", "Ana")

    assert result.has_conflicts
    (conflict,) = result.conflicts
    assert conflict.type is ConflictType.TIME_OVERLAP
    assert "unreachable" in conflict.details["error"]


@pytest.mark.asyncio
async def test_malformed_candidate_time_fails_closed(store):
    result = await check_conflicts(store, "2024-03-15", "ten", "11:00", "dr@x.com", "A", "Ana")

    assert result.has_conflicts
    assert result.conflicts[0].type is ConflictType.TIME_OVERLAP
