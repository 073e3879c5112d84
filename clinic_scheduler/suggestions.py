"""
Alternative Suggestions

When a requested slot is taken, look for the nearest bookable substitutes:
1. another room at the same time (urgency medium)
2. another hourly slot in the same room on the same day (urgency by distance)
3. only if 1 and 2 found nothing: the same slot and room on nearby days (low)

Every candidate is confirmed with the conflict detector, which re-reads the
day's appointments each time. Results are ordered by urgency, capped at six.

Suggestions are advisory: any error returns an empty list.
"""
from __future__ import annotations
from collections.abc import Callable
from datetime import date
from . import config
from .conflicts import ConflictDetector
from .logging_config import get_logger
from .models import AlternativeSuggestion, Room, SuggestionType, Urgency
from .store import SchedulingStore
from .timeutils import adjacent_dates, describe_gap, format_date_label, hourly_slots, parse_minutes

logger = get_logger(__name__)

MAX_SUGGESTIONS = 6
MAX_TIME_SUGGESTIONS = 5
MAX_DAY_SUGGESTIONS = 3
ADJACENT_DAYS = 3


def urgency_for_gap(minutes: int) -> Urgency:
    """Closer to the requested start means more urgent."""
    if minutes <= 60:
        return Urgency.HIGH
    if minutes <= 120:
        return Urgency.MEDIUM
    return Urgency.LOW


class AlternativeSuggester:
    def __init__(
        self,
        store: SchedulingStore,
        detector: ConflictDetector | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.store = store
        self.detector = detector or ConflictDetector(store)
        self.today = today

    async def suggest(
        self,
        date: str,
        start_time: str,
        end_time: str,
        psychologist_email: str,
        room_id: str,
    ) -> list[AlternativeSuggestion]:
        try:
            all_rooms = await self.store.get_all_rooms()
            room_name = _room_name(all_rooms, room_id)

            suggestions = await self._other_rooms(date, start_time, end_time, psychologist_email, room_id)
            suggestions += await self._other_times(
                date, start_time, psychologist_email, room_id, room_name
            )
            if not suggestions:
                suggestions = await self._other_days(
                    date, start_time, end_time, psychologist_email, room_id, room_name
                )

            # sorted() is stable, so equal urgencies keep discovery order
            suggestions = sorted(suggestions, key=lambda s: s.urgency.rank, reverse=True)
            return suggestions[:MAX_SUGGESTIONS]
        except Exception as exc:
            logger.warning(
                "alternative_suggestions_failed",
                date=date,
                start_time=start_time,
                room_id=room_id,
                error=str(exc),
                exc_info=True,
            )
            return []

    async def _other_rooms(
        self, date: str, start_time: str, end_time: str, psychologist_email: str, room_id: str
    ) -> list[AlternativeSuggestion]:
        found = []
        for room in await self.store.get_available_rooms(date, start_time):
            if room.id == room_id:
                continue
            result = await self.detector.check(date, start_time, end_time, psychologist_email, room.id)
            if result.has_conflicts:
                continue
            found.append(
                AlternativeSuggestion(
                    type=SuggestionType.ALTERNATIVE_ROOM,
                    room_id=room.id,
                    room_name=room.name,
                    date=date,
                    start_time=start_time,
                    end_time=end_time,
                    message=f"Use {room.name} at the same time",
                    urgency=Urgency.MEDIUM,
                )
            )
        return found

    async def _other_times(
        self, date: str, start_time: str, psychologist_email: str, room_id: str, room_name: str
    ) -> list[AlternativeSuggestion]:
        requested = parse_minutes(start_time)
        found = []
        for slot_start, slot_end in hourly_slots(config.WORKDAY_START_HOUR, config.WORKDAY_END_HOUR):
            if slot_start == start_time:
                continue
            result = await self.detector.check(date, slot_start, slot_end, psychologist_email, room_id)
            if result.has_conflicts:
                continue
            gap = abs(requested - parse_minutes(slot_start))
            found.append(
                AlternativeSuggestion(
                    type=SuggestionType.ALTERNATIVE_TIME,
                    room_id=room_id,
                    room_name=room_name,
                    date=date,
                    start_time=slot_start,
                    end_time=slot_end,
                    message=f"{slot_start} - {slot_end} in {room_name} ({describe_gap(gap)})",
                    urgency=urgency_for_gap(gap),
                )
            )
            if len(found) >= MAX_TIME_SUGGESTIONS:
                break
        return found

    async def _other_days(
        self,
        date: str,
        start_time: str,
        end_time: str,
        psychologist_email: str,
        room_id: str,
        room_name: str,
    ) -> list[AlternativeSuggestion]:
        found = []
        for candidate in adjacent_dates(date, ADJACENT_DAYS, self.today()):
            result = await self.detector.check(candidate, start_time, end_time, psychologist_email, room_id)
            if result.has_conflicts:
                continue
            found.append(
                AlternativeSuggestion(
                    type=SuggestionType.ALTERNATIVE_TIME,
                    room_id=room_id,
                    room_name=room_name,
                    date=candidate,
                    start_time=start_time,
                    end_time=end_time,
                    message=f"{format_date_label(candidate)} in {room_name}",
                    urgency=Urgency.LOW,
                )
            )
            if len(found) >= MAX_DAY_SUGGESTIONS:
                break
        return found


async def suggest_alternatives(
    store: SchedulingStore,
    date: str,
    start_time: str,
    end_time: str,
    psychologist_email: str,
    room_id: str,
) -> list[AlternativeSuggestion]:
    return await AlternativeSuggester(store).suggest(date, start_time, end_time, psychologist_email, room_id)


def _room_name(rooms: list[Room], room_id: str) -> str:
    for room in rooms:
        if room.id == room_id:
            return room.name
    return f"Room {room_id}"
