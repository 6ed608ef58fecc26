"""
In-memory calendar client for running without Google authentication.
"""

import json
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Set

import pendulum
from pendulum import DateTime

from .. import GENERATED_BY_TAG
from ..domain.exceptions import CalendarAPIError
from ..domain.models import CalendarEvent, EventDraft


class MockCalendarClient:
    """
    Mock client that keeps events in memory.

    Optionally seeded from a JSON file with a list of objects carrying
    ``id``, ``title``, ``start``, ``end`` and optionally ``generated_by``.
    Event ids listed in ``failing_ids`` make ``delete_event`` fail, and
    titles in ``failing_titles`` make ``insert_event`` fail.
    """

    def __init__(
        self,
        seed_file: Optional[Path] = None,
        failing_titles: Optional[Set[str]] = None,
        failing_ids: Optional[Set[str]] = None,
    ):
        self.events: Dict[str, CalendarEvent] = {}
        self.failing_titles = set(failing_titles or ())
        self.failing_ids = set(failing_ids or ())
        if seed_file is not None:
            self._load_seed_file(seed_file)

    def _load_seed_file(self, seed_file: Path) -> None:
        if not seed_file.exists():
            return
        with open(seed_file, "r", encoding="utf-8") as f:
            for raw in json.load(f):
                event = CalendarEvent(
                    id=raw.get("id") or self._new_id(),
                    title=raw.get("title", "(no title)"),
                    start=raw["start"],
                    end=raw["end"],
                    user_input=raw.get("user_input", "general activities"),
                    generated_by=raw.get("generated_by"),
                    duration_minutes=raw.get("duration"),
                    html_link=raw.get("html_link"),
                )
                self.events[event.id] = event

    @staticmethod
    def _new_id() -> str:
        return f"mock_{uuid.uuid4().hex[:16]}"

    async def insert_event(self, draft: EventDraft) -> CalendarEvent:
        if draft.title in self.failing_titles:
            raise CalendarAPIError(f"Mock insert failure for '{draft.title}'")

        event = CalendarEvent(
            id=self._new_id(),
            title=draft.title,
            start=draft.interval.start.to_iso8601_string(),
            end=draft.interval.end.to_iso8601_string(),
            user_input=draft.user_input,
            generated_by=GENERATED_BY_TAG,
            duration_minutes=draft.duration_minutes,
        )
        self.events[event.id] = event
        return event

    async def list_events(self, time_min: DateTime, time_max: DateTime) -> List[CalendarEvent]:
        listed = []
        for event in self.events.values():
            start = pendulum.parse(event.start)
            end = pendulum.parse(event.end)
            if start < time_max and end > time_min:
                listed.append(event)
        return sorted(listed, key=lambda e: pendulum.parse(e.start))

    async def delete_event(self, event_id: str) -> None:
        if event_id in self.failing_ids:
            raise CalendarAPIError(f"Mock delete failure for '{event_id}'")
        if event_id not in self.events:
            raise CalendarAPIError(f"Event not found: {event_id}")
        del self.events[event_id]
