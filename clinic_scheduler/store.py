"""Data-access capability consumed by the scheduling core.

The detector and suggester only ever see these async reads (and the booking
route the single write). Nothing here is transactional: a slot reported as
free can be taken by a concurrent writer before the caller books it.
"""
from __future__ import annotations
import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Protocol
from .models import Appointment, AppointmentStatus, Room


class AppointmentStore(Protocol):
    async def get_appointments_by_date(self, date_iso: str) -> list[Appointment]: ...

    async def get_appointment(self, appointment_id: str) -> Appointment | None: ...

    async def save_appointment(self, appointment: Appointment) -> Appointment: ...


class RoomStore(Protocol):
    async def get_all_rooms(self) -> list[Room]: ...

    async def get_available_rooms(
        self, date_iso: str, time_hm: str, exclude_appointment_id: str | None = None
    ) -> list[Room]: ...


class SchedulingStore(AppointmentStore, RoomStore, Protocol):
    """Everything the scheduling core and the HTTP routes need."""


def available_rooms(
    rooms: Iterable[Room],
    appointments: Iterable[Appointment],
    date_iso: str,
    time_hm: str,
    exclude_appointment_id: str | None = None,
) -> list[Room]:
    """Rooms switched on and not taken by a live appointment starting at `time_hm`.

    This is the coarse administrative view (exact start match only); the
    conflict detector does the real interval check.
    """
    occupied = {
        appt.room_id
        for appt in appointments
        if appt.appointment_date == date_iso
        and appt.start_time == time_hm
        and appt.status != AppointmentStatus.CANCELLED
        and appt.id != exclude_appointment_id
    }
    return [room for room in rooms if room.is_available and room.id not in occupied]


DEFAULT_ROOMS = [
    ("Room A - Individual Therapy", ["Armchair", "Table", "Lamp"], "individual"),
    ("Room B - Family Therapy", ["Sofa", "Chairs", "Coffee table"], "family"),
    ("Room C - Group Therapy", ["Circle of chairs", "Whiteboard"], "group"),
    ("Room D - Assessment", ["Desk", "Computer", "Tests"], "evaluation"),
    ("Room E - Relaxation", ["Couch", "Music", "Aromatherapy"], "relaxation"),
]


class InMemoryStore:
    """Process-local store; used when no records backend is configured."""

    def __init__(
        self,
        appointments: Iterable[Appointment] = (),
        rooms: Iterable[Room] = (),
    ) -> None:
        self._appointments: dict[str, Appointment] = {a.id: a for a in appointments}
        self._rooms: dict[str, Room] = {r.id: r for r in rooms}

    @classmethod
    def with_default_rooms(cls) -> "InMemoryStore":
        now = datetime.now(timezone.utc).isoformat()
        rooms = [
            Room(
                id=str(uuid.uuid4()),
                name=name,
                equipment=equipment,
                room_type=room_type,
                created_at=now,
                updated_at=now,
            )
            for name, equipment, room_type in DEFAULT_ROOMS
        ]
        return cls(rooms=rooms)

    async def get_appointments_by_date(self, date_iso: str) -> list[Appointment]:
        found = [a for a in self._appointments.values() if a.appointment_date == date_iso]
        return sorted(found, key=lambda a: a.start_time)

    async def get_appointment(self, appointment_id: str) -> Appointment | None:
        return self._appointments.get(appointment_id)

    async def save_appointment(self, appointment: Appointment) -> Appointment:
        self._appointments[appointment.id] = appointment
        return appointment

    async def get_all_rooms(self) -> list[Room]:
        return list(self._rooms.values())

    async def get_available_rooms(
        self, date_iso: str, time_hm: str, exclude_appointment_id: str | None = None
    ) -> list[Room]:
        return available_rooms(
            self._rooms.values(),
            self._appointments.values(),
            date_iso,
            time_hm,
            exclude_appointment_id,
        )
