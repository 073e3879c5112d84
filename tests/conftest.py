import pytest
from clinic_scheduler.models import Appointment, Room
from clinic_scheduler.store import InMemoryStore


def make_appt(**overrides) -> Appointment:
    data = {
        "id": "appt-1",
        "appointmentDate": "2024-03-15",
        "startTime": "10:00",
        "endTime": "11:00",
        "roomId": "A",
        "psychologistEmail": "dr@x.com",
        "patientName": "Ana",
        "status": "scheduled",
    }
    data.update(overrides)
    return Appointment.model_validate(data)


@pytest.fixture
def room_a():
    return Room(id="A", name="Room A")


@pytest.fixture
def store(room_a):
    """Day with one booking: Ana with dr@x.com in room A, 10:00-11:00."""
    return InMemoryStore(appointments=[make_appt()], rooms=[room_a, Room(id="B", name="Room B")])
