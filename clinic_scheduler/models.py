from __future__ import annotations
from datetime import date as calendar_date
from enum import Enum
from typing import Annotated
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints, model_validator
from pydantic.alias_generators import to_camel
from .config import DEFAULT_DURATION_MINUTES
from .timeutils import add_minutes, parse_minutes

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^(?:(?:[01]\d|2[0-3]):[0-5]\d|24:00)$"


def _calendar_day(value: str) -> str:
    """Reject well-formed but impossible dates such as 2024-02-30."""
    calendar_date.fromisoformat(value)
    return value


DateISO = Annotated[str, StringConstraints(pattern=DATE_PATTERN), AfterValidator(_calendar_day)]
TimeHM = Annotated[str, StringConstraints(pattern=TIME_PATTERN)]


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ConflictType(str, Enum):
    ROOM = "room"
    PSYCHOLOGIST = "psychologist"
    PATIENT = "patient"
    # the check itself failed; callers must treat it as a blocking conflict
    TIME_OVERLAP = "time_overlap"


class SuggestionType(str, Enum):
    ALTERNATIVE_ROOM = "alternative_room"
    ALTERNATIVE_TIME = "alternative_time"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _URGENCY_RANK[self]


_URGENCY_RANK = {Urgency.HIGH: 3, Urgency.MEDIUM: 2, Urgency.LOW: 1}


class CamelModel(BaseModel):
    """Records travel as camelCase JSON; snake_case names are accepted too."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Appointment(CamelModel):
    id: str
    psychologist_email: str
    psychologist_name: str | None = None
    patient_name: str
    patient_id: str | None = None
    appointment_date: DateISO
    appointment_time: TimeHM | None = None  # legacy single-field start
    start_time: TimeHM | None = None
    end_time: TimeHM | None = None
    room_id: str
    room_name: str | None = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    notes: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @model_validator(mode="after")
    def _normalize_times(self) -> "Appointment":
        # Legacy rows only have appointmentTime; give them an explicit duration.
        if self.start_time is None:
            if self.appointment_time is None:
                raise ValueError("appointment needs startTime or appointmentTime")
            self.start_time = self.appointment_time
        if self.end_time is None:
            self.end_time = add_minutes(self.start_time, DEFAULT_DURATION_MINUTES)
        return self

    @property
    def display_room(self) -> str:
        return self.room_name or f"Room {self.room_id}"

    @property
    def display_psychologist(self) -> str:
        return self.psychologist_name or self.psychologist_email


class Room(CamelModel):
    id: str
    name: str
    is_available: bool = True
    equipment: list[str] = Field(default_factory=list)
    capacity: int | None = Field(None, gt=0)
    room_type: str | None = None
    description: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class ConflictDetail(CamelModel):
    type: ConflictType
    message: str
    conflicting_appointment: Appointment | None = None
    details: dict[str, str] = Field(default_factory=dict)


class ConflictResult(CamelModel):
    has_conflicts: bool
    conflicts: list[ConflictDetail] = Field(default_factory=list)


class AlternativeSuggestion(CamelModel):
    type: SuggestionType
    room_id: str
    room_name: str
    date: DateISO
    start_time: TimeHM
    end_time: TimeHM
    message: str
    urgency: Urgency


class _TimeRange(CamelModel):
    date: DateISO
    start_time: TimeHM
    end_time: TimeHM

    @model_validator(mode="after")
    def _check_order(self) -> "_TimeRange":
        if parse_minutes(self.start_time) >= parse_minutes(self.end_time):
            raise ValueError("startTime must be before endTime")
        return self


class AlternativesRequest(_TimeRange):
    psychologist_email: str
    room_id: str


class ConflictCheckRequest(AlternativesRequest):
    patient_name: str = ""
    exclude_appointment_id: str | None = None


class BookRequest(CamelModel):
    date: DateISO
    start_time: TimeHM
    end_time: TimeHM | None = None  # defaults to a standard session length
    psychologist_email: str
    psychologist_name: str | None = None
    patient_name: str = Field(min_length=1)
    patient_id: str | None = None
    room_id: str
    notes: str = ""
    status: AppointmentStatus | None = None  # new bookings: scheduled; edits: unchanged

    @model_validator(mode="after")
    def _fill_end(self) -> "BookRequest":
        if self.end_time is None:
            self.end_time = add_minutes(self.start_time, DEFAULT_DURATION_MINUTES)
        if parse_minutes(self.start_time) >= parse_minutes(self.end_time):
            raise ValueError("startTime must be before endTime")
        return self


class BookResponse(CamelModel):
    appointment: Appointment
    message: str


class ConflictResponse(CamelModel):
    """Body of a 409 reply: why the slot was refused and what else is free."""
    conflicts: list[ConflictDetail]
    alternatives: list[AlternativeSuggestion]
