import asyncio
import uuid
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional
from fastapi import FastAPI, HTTPException, Depends, Query
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from . import config
from .client import HttpRecordStore
from .conflicts import ConflictDetector
from .logging_config import get_logger, setup_structured_logging
from .models import (
    AlternativeSuggestion,
    AlternativesRequest,
    Appointment,
    AppointmentStatus,
    BookRequest,
    BookResponse,
    ConflictCheckRequest,
    ConflictResponse,
    ConflictResult,
    Room,
    TIME_PATTERN,
)
from .store import InMemoryStore, SchedulingStore
from .suggestions import AlternativeSuggester
from .timeutils import format_date_label

setup_structured_logging(config.LOG_LEVEL)
logger = get_logger(__name__)

# HTTPBearer scheme so Swagger-UI can attach the Authorization header globally
auth_scheme = HTTPBearer(auto_error=False)

app = FastAPI(title="Clinic Scheduling Service")

# Serializes check-then-write for bookings handled by this process only.
# Separate workers or other writers to the records backend can still race.
_booking_lock = asyncio.Lock()


@lru_cache(maxsize=1)
def get_store() -> SchedulingStore:
    """Remote records backend when configured, otherwise an in-memory store."""
    if config.RECORDS_BASE_URL:
        return HttpRecordStore()
    return InMemoryStore.with_default_rooms()


def verify_api_key(credentials: HTTPAuthorizationCredentials = Depends(auth_scheme)):
    """Validate Bearer token provided via Authorization header"""
    if credentials is None or credentials.scheme.lower() != "bearer" or credentials.credentials != config.API_KEY:
        raise HTTPException(status_code=401, detail="Invalid API key")


@app.get("/health")
async def health():
    return {"status": "ok"}

# Conflict checking ---------------------------------------------------------

@app.post("/conflicts/check", dependencies=[Depends(verify_api_key)], response_model=ConflictResult)
async def check(req: ConflictCheckRequest, store: SchedulingStore = Depends(get_store)):
    """Report collisions for a proposed appointment without booking it."""
    return await ConflictDetector(store).check(
        req.date,
        req.start_time,
        req.end_time,
        req.psychologist_email,
        req.room_id,
        req.patient_name,
        req.exclude_appointment_id,
    )


@app.post(
    "/conflicts/alternatives",
    dependencies=[Depends(verify_api_key)],
    response_model=list[AlternativeSuggestion],
)
async def alternatives(req: AlternativesRequest, store: SchedulingStore = Depends(get_store)):
    return await AlternativeSuggester(store).suggest(
        req.date, req.start_time, req.end_time, req.psychologist_email, req.room_id
    )


@app.get("/rooms/available", dependencies=[Depends(verify_api_key)], response_model=list[Room])
async def rooms_available(
    date: str = Query(..., pattern=r"^\d{4}-\d{2}-\d{2}$", description="YYYY-MM-DD"),
    time: str = Query(..., pattern=TIME_PATTERN, description="HH:MM start time"),
    exclude_appointment_id: Optional[str] = Query(None),
    store: SchedulingStore = Depends(get_store),
):
    """Rooms switched on and not already taken at that start time."""
    return await store.get_available_rooms(date, time, exclude_appointment_id)

# Booking -------------------------------------------------------------------

async def _refuse(store: SchedulingStore, req: BookRequest, result: ConflictResult) -> JSONResponse:
    suggestions = await AlternativeSuggester(store).suggest(
        req.date, req.start_time, req.end_time, req.psychologist_email, req.room_id
    )
    body = ConflictResponse(conflicts=result.conflicts, alternatives=suggestions)
    return JSONResponse(status_code=409, content=body.model_dump(mode="json", by_alias=True))


async def _room_name(store: SchedulingStore, room_id: str) -> Optional[str]:
    for room in await store.get_all_rooms():
        if room.id == room_id:
            return room.name
    return None


def _appointment_from(
    req: BookRequest,
    appointment_id: str,
    room_name: Optional[str],
    created_at: Optional[str],
    status: AppointmentStatus,
) -> Appointment:
    return Appointment(
        id=appointment_id,
        psychologist_email=req.psychologist_email,
        psychologist_name=req.psychologist_name,
        patient_name=req.patient_name,
        patient_id=req.patient_id,
        appointment_date=req.date,
        appointment_time=req.start_time,  # kept for older readers
        start_time=req.start_time,
        end_time=req.end_time,
        room_id=req.room_id,
        room_name=room_name,
        status=status,
        notes=req.notes,
        created_at=created_at,
        updated_at=datetime.now(timezone.utc).isoformat(),
    )


@app.post(
    "/appointments",
    dependencies=[Depends(verify_api_key)],
    response_model=BookResponse,
    status_code=201,
    responses={409: {"model": ConflictResponse}},
)
async def book(req: BookRequest, store: SchedulingStore = Depends(get_store)):
    """Book an appointment if it collides with nothing; otherwise 409 with alternatives."""
    async with _booking_lock:
        result = await ConflictDetector(store).check(
            req.date, req.start_time, req.end_time, req.psychologist_email, req.room_id, req.patient_name
        )
        if result.has_conflicts:
            logger.info(
                "booking_refused",
                date=req.date,
                start_time=req.start_time,
                room_id=req.room_id,
                conflict_types=[c.type.value for c in result.conflicts],
            )
            return await _refuse(store, req, result)

        now = datetime.now(timezone.utc).isoformat()
        appt = _appointment_from(
            req,
            str(uuid.uuid4()),
            await _room_name(store, req.room_id),
            now,
            req.status or AppointmentStatus.SCHEDULED,
        )
        await store.save_appointment(appt)

    logger.info("appointment_booked", appointment_id=appt.id, date=appt.appointment_date, room_id=appt.room_id)
    return BookResponse(
        appointment=appt,
        message=f"Appointment booked for {appt.patient_name} on {format_date_label(appt.appointment_date)} at {appt.start_time}",
    )


@app.put(
    "/appointments/{appointment_id}",
    dependencies=[Depends(verify_api_key)],
    response_model=BookResponse,
    responses={409: {"model": ConflictResponse}},
)
async def update(appointment_id: str, req: BookRequest, store: SchedulingStore = Depends(get_store)):
    """Move or edit an existing appointment, ignoring its own current slot."""
    async with _booking_lock:
        current = await store.get_appointment(appointment_id)
        if not current:
            raise HTTPException(status_code=404, detail="No appointment found")

        result = await ConflictDetector(store).check(
            req.date,
            req.start_time,
            req.end_time,
            req.psychologist_email,
            req.room_id,
            req.patient_name,
            exclude_appointment_id=appointment_id,
        )
        if result.has_conflicts:
            logger.info("update_refused", appointment_id=appointment_id, conflict_types=[c.type.value for c in result.conflicts])
            return await _refuse(store, req, result)

        appt = _appointment_from(
            req,
            appointment_id,
            await _room_name(store, req.room_id),
            current.created_at,
            req.status or current.status,
        )
        await store.save_appointment(appt)

    logger.info("appointment_updated", appointment_id=appointment_id, date=appt.appointment_date)
    return BookResponse(appointment=appt, message=f"Appointment updated to {appt.appointment_date} {appt.start_time}-{appt.end_time}")
