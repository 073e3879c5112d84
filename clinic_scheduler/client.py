"""Async client for the clinic records API backing appointments and rooms.
Assumes OAuth2 client-credentials flow.
"""
from __future__ import annotations
import time
import httpx
from . import config
from .models import Appointment, Room
from .store import available_rooms


class HttpRecordStore:
    """Implements the scheduling store over the remote records API."""

    def __init__(
        self,
        base_url: str = config.RECORDS_BASE_URL,
        token_url: str = config.RECORDS_TOKEN_URL,
        client_id: str | None = config.RECORDS_CLIENT_ID,
        client_secret: str | None = config.RECORDS_CLIENT_SECRET,
        timeout: float = 15,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self._token_cache: dict[str, float | str | None] = {"token": None, "exp": 0.0}

    async def _get_token(self) -> str:
        """Fetch and cache bearer token until five minutes before it expires."""
        now = time.time()
        if self._token_cache["token"] and now < self._token_cache["exp"]:
            return self._token_cache["token"]  # type: ignore

        async with httpx.AsyncClient(http2=True, timeout=self.timeout) as client:
            resp = await client.post(
                self.token_url,
                data={"grant_type": "client_credentials"},
                auth=(self.client_id or "", self.client_secret or ""),
            )
            resp.raise_for_status()
            data = resp.json()
            token = data["access_token"]
            # default expires_in 3600 seconds = 1 hour
            self._token_cache.update(token=token, exp=now + data.get("expires_in", 3600) - 300)
            return token

    async def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {await self._get_token()}", "Accept": "application/json"}

    async def get_appointments_by_date(self, date_iso: str) -> list[Appointment]:
        """Return every appointment on a date (YYYY-MM-DD), any status."""
        headers = await self._headers()
        async with httpx.AsyncClient(http2=True, timeout=self.timeout) as client:
            resp = await client.get(
                f"{self.base_url}/appointments", headers=headers, params={"date": date_iso}
            )
            resp.raise_for_status()
            payload = resp.json()

        return [Appointment.model_validate(item) for item in payload.get("items", [])]

    async def get_appointment(self, appointment_id: str) -> Appointment | None:
        headers = await self._headers()
        async with httpx.AsyncClient(http2=True, timeout=self.timeout) as client:
            resp = await client.get(f"{self.base_url}/appointments/{appointment_id}", headers=headers)
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            return Appointment.model_validate(resp.json())

    async def save_appointment(self, appointment: Appointment) -> Appointment:
        """Create or replace an appointment record (PUT is idempotent on id)."""
        headers = {**await self._headers(), "Content-Type": "application/json"}
        body = appointment.model_dump(mode="json", by_alias=True, exclude_none=True)
        async with httpx.AsyncClient(http2=True, timeout=self.timeout) as client:
            resp = await client.put(
                f"{self.base_url}/appointments/{appointment.id}", headers=headers, json=body
            )
            resp.raise_for_status()
        return appointment

    async def get_all_rooms(self) -> list[Room]:
        headers = await self._headers()
        async with httpx.AsyncClient(http2=True, timeout=self.timeout) as client:
            resp = await client.get(f"{self.base_url}/rooms", headers=headers)
            resp.raise_for_status()
            payload = resp.json()

        return [Room.model_validate(item) for item in payload.get("items", [])]

    async def get_available_rooms(
        self, date_iso: str, time_hm: str, exclude_appointment_id: str | None = None
    ) -> list[Room]:
        # The backend has no availability query; derive it from the two reads.
        rooms = await self.get_all_rooms()
        appointments = await self.get_appointments_by_date(date_iso)
        return available_rooms(rooms, appointments, date_iso, time_hm, exclude_appointment_id)
