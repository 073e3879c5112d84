"""
Conflict Detection

Checks a proposed appointment against the other appointments booked on the
same day, along three independent dimensions:
- room: the room is already in use
- psychologist: the psychologist is already seeing someone
- patient: the patient already has a session

One existing appointment can produce up to three conflict entries.
Cancelled appointments never conflict.

Errors fail closed: if the day's appointments cannot be read or parsed the
result reports a single `time_overlap` conflict so the caller refuses the
booking instead of risking a double-booking. The check is a point-in-time
read; it does not reserve anything.
"""
from __future__ import annotations
from .logging_config import get_logger
from .models import Appointment, AppointmentStatus, ConflictDetail, ConflictResult, ConflictType
from .store import AppointmentStore
from .timeutils import next_available_time, overlaps

logger = get_logger(__name__)


class ConflictDetector:
    def __init__(self, store: AppointmentStore) -> None:
        self.store = store

    async def check(
        self,
        date: str,
        start_time: str,
        end_time: str,
        psychologist_email: str,
        room_id: str,
        patient_name: str = "",
        exclude_appointment_id: str | None = None,
    ) -> ConflictResult:
        """
        Report every same-day appointment that collides with the candidate.

        Args:
            date: YYYY-MM-DD
            start_time, end_time: HH:MM, half-open range
            psychologist_email: identity of the psychologist
            room_id: identity of the room
            patient_name: compared case-insensitively; empty skips the patient check
            exclude_appointment_id: the appointment being edited, if any

        Returns:
            ConflictResult with has_conflicts set when any entry was found
        """
        try:
            existing = await self.store.get_appointments_by_date(date)
            conflicts: list[ConflictDetail] = []

            for appt in existing:
                if exclude_appointment_id and appt.id == exclude_appointment_id:
                    continue
                if appt.status == AppointmentStatus.CANCELLED:
                    continue
                if not overlaps(start_time, end_time, appt.start_time, appt.end_time):
                    continue

                if appt.room_id == room_id:
                    conflicts.append(_room_conflict(appt, start_time, end_time))
                if appt.psychologist_email == psychologist_email:
                    conflicts.append(_psychologist_conflict(appt, start_time, end_time))
                if patient_name and appt.patient_name.casefold() == patient_name.casefold():
                    conflicts.append(_patient_conflict(appt, patient_name, start_time, end_time))

            return ConflictResult(has_conflicts=bool(conflicts), conflicts=conflicts)
        except Exception as exc:
            logger.error(
                "conflict_check_failed",
                date=date,
                start_time=start_time,
                end_time=end_time,
                room_id=room_id,
                error=str(exc),
                exc_info=True,
            )
            return ConflictResult(
                has_conflicts=True,
                conflicts=[
                    ConflictDetail(
                        type=ConflictType.TIME_OVERLAP,
                        message="Could not verify conflicts. Please try again.",
                        details={"error": str(exc)},
                    )
                ],
            )


async def check_conflicts(
    store: AppointmentStore,
    date: str,
    start_time: str,
    end_time: str,
    psychologist_email: str,
    room_id: str,
    patient_name: str = "",
    exclude_appointment_id: str | None = None,
) -> ConflictResult:
    return await ConflictDetector(store).check(
        date, start_time, end_time, psychologist_email, room_id, patient_name, exclude_appointment_id
    )


def _base_details(appt: Appointment, start_time: str, end_time: str) -> dict[str, str]:
    return {
        "requestedTime": f"{start_time} - {end_time}",
        "conflictTime": f"{appt.start_time} - {appt.end_time}",
        "nextAvailableTime": next_available_time(appt.end_time),
    }


def _room_conflict(appt: Appointment, start_time: str, end_time: str) -> ConflictDetail:
    room = appt.display_room
    return ConflictDetail(
        type=ConflictType.ROOM,
        message=(
            f"{room} is booked from {appt.start_time} to {appt.end_time} for an appointment "
            f"with {appt.patient_name}. Your time ({start_time}-{end_time}) overlaps it."
        ),
        conflicting_appointment=appt,
        details={
            **_base_details(appt, start_time, end_time),
            "conflictingPatient": appt.patient_name,
            "conflictingPsychologist": appt.display_psychologist,
            "roomName": room,
        },
    )


def _psychologist_conflict(appt: Appointment, start_time: str, end_time: str) -> ConflictDetail:
    psychologist = appt.display_psychologist
    return ConflictDetail(
        type=ConflictType.PSYCHOLOGIST,
        message=(
            f"{psychologist} already has an appointment from {appt.start_time} to {appt.end_time} "
            f"with {appt.patient_name} in {appt.display_room}."
        ),
        conflicting_appointment=appt,
        details={
            **_base_details(appt, start_time, end_time),
            "conflictingPatient": appt.patient_name,
            "conflictingRoom": appt.display_room,
            "psychologistName": psychologist,
        },
    )


def _patient_conflict(
    appt: Appointment, patient_name: str, start_time: str, end_time: str
) -> ConflictDetail:
    return ConflictDetail(
        type=ConflictType.PATIENT,
        message=(
            f"{patient_name} already has an appointment from {appt.start_time} to {appt.end_time} "
            f"with {appt.display_psychologist} in {appt.display_room}."
        ),
        conflicting_appointment=appt,
        details={
            **_base_details(appt, start_time, end_time),
            "conflictingPsychologist": appt.display_psychologist,
            "conflictingRoom": appt.display_room,
        },
    )
