"""
Application services for creating, listing and deleting generated events.

The service asks a title generator for events, places them with the
domain-level ``SlotFinder`` in one sequential pass, and only then writes
them to the calendar concurrently. The calendar and the title generator
are plain protocols so tests can plug in stubs.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

import pendulum
from pendulum import DateTime

from .. import GENERATED_BY_TAG
from ..adapters.title_generator import TitleGeneratorProtocol
from ..domain.exceptions import InvalidRequestError
from ..domain.models import (
    CalendarEvent,
    DayRange,
    EventDraft,
    GeneratedEvent,
    SchedulingConstraints,
    SlotFailure,
    TimeInterval,
)
from ..domain.slot_finder import SlotFinder

logger = logging.getLogger(__name__)

MIN_BATCH_SIZE = 1
MAX_BATCH_SIZE = 30


class CalendarClientProtocol(Protocol):
    """Protocol describing the calendar client behaviour needed by the service."""

    async def insert_event(self, draft: EventDraft) -> CalendarEvent:
        """Write a scheduled event and return it as stored."""

    async def list_events(self, time_min: DateTime, time_max: DateTime) -> List[CalendarEvent]:
        """Return events overlapping the window."""

    async def delete_event(self, event_id: str) -> None:
        """Delete one event."""


@dataclass
class ItemOutcome:
    """What happened to one requested event of a batch."""
    index: int
    title: str
    duration_minutes: int
    interval: Optional[TimeInterval] = None
    event: Optional[CalendarEvent] = None
    failure: Optional[SlotFailure] = None
    error: Optional[str] = None

    @property
    def created(self) -> bool:
        return self.event is not None


@dataclass
class BatchCreationReport:
    """Per-item results of one create request."""
    user_input: str
    timezone: str
    items: List[ItemOutcome] = field(default_factory=list)
    scheduling_ms: float = 0.0
    api_ms: float = 0.0

    @property
    def created(self) -> List[ItemOutcome]:
        return [item for item in self.items if item.created]

    @property
    def failed(self) -> List[ItemOutcome]:
        return [item for item in self.items if not item.created]


@dataclass
class DeletionOutcome:
    id: str
    title: str
    deleted: bool
    error: Optional[str] = None


@dataclass
class DeletionReport:
    """Per-event results of one delete request."""
    results: List[DeletionOutcome] = field(default_factory=list)

    @property
    def total_found(self) -> int:
        return len(self.results)

    @property
    def successfully_deleted(self) -> int:
        return sum(1 for result in self.results if result.deleted)

    @property
    def failed_deletions(self) -> int:
        return sum(1 for result in self.results if not result.deleted)


@dataclass
class PlannedItem:
    outcome: ItemOutcome
    draft: Optional[EventDraft] = None


class EventFillerService:
    """
    Orchestrates title generation, slot placement and calendar writes.
    """

    def __init__(
        self,
        calendar_client: CalendarClientProtocol,
        title_generator: TitleGeneratorProtocol,
        slot_finder: Optional[SlotFinder] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._calendar_client = calendar_client
        self._title_generator = title_generator
        self._slot_finder = slot_finder or SlotFinder()
        self._rng = rng or random.Random()

    async def create_events(
        self,
        *,
        start_date: DateTime,
        end_date: DateTime,
        count: int,
        user_input: str,
        timezone: str,
        constraints: SchedulingConstraints,
    ) -> BatchCreationReport:
        """
        Generate ``count`` events, place them without overlaps and write them.

        Every requested item gets an outcome: created, not placed (slot
        failure), or placed but rejected by the calendar.

        Raises:
            InvalidRequestError: If the request is rejected before scheduling
        """
        self._validate_request(start_date, end_date, count, constraints)

        events = self._title_generator.generate_titles(user_input, count)
        if len(events) < count:
            raise InvalidRequestError(
                f"Title generator returned {len(events)} events, {count} requested"
            )

        report = BatchCreationReport(user_input=user_input, timezone=timezone)

        logger.info("Scheduling %d events for %r", count, user_input)
        started = time.perf_counter()
        planned = self.plan_events(
            events=events[:count],
            start_date=start_date,
            end_date=end_date,
            user_input=user_input,
            timezone=timezone,
            constraints=constraints,
        )
        report.scheduling_ms = (time.perf_counter() - started) * 1000
        logger.info("Scheduling completed in %.1fms", report.scheduling_ms)

        started = time.perf_counter()
        await self._dispatch(planned)
        report.api_ms = (time.perf_counter() - started) * 1000
        logger.info("Calendar API calls completed in %.1fms", report.api_ms)

        report.items = [item.outcome for item in planned]
        return report

    def plan_events(
        self,
        *,
        events: Sequence[GeneratedEvent],
        start_date: DateTime,
        end_date: DateTime,
        user_input: str,
        timezone: str,
        constraints: SchedulingConstraints,
    ) -> List[PlannedItem]:
        """
        Place every event in one sequential pass.

        Each placed interval is appended to the scheduled list before the
        next event is placed, so later events never overlap earlier ones.
        """
        scheduled: List[TimeInterval] = []
        planned: List[PlannedItem] = []

        first_day = start_date.in_timezone(timezone).start_of("day")
        last_day = end_date.in_timezone(timezone).start_of("day")
        span_days = max((last_day - first_day).in_days(), 0)
        range_end = last_day.end_of("day")

        for index, generated in enumerate(events):
            title = generated.title or f"Generated Event {index + 1}"
            outcome = ItemOutcome(
                index=index,
                title=title,
                duration_minutes=generated.duration_minutes,
            )

            day = first_day.add(days=self._rng.randint(0, span_days))
            desired_start = day.set(hour=constraints.working_hours_start, minute=0, second=0, microsecond=0)

            result = self._slot_finder.find_slot(
                scheduled,
                desired_start,
                generated.duration_minutes,
                DayRange(start=desired_start, end=range_end),
                timezone,
                constraints,
                label=title,
            )

            if isinstance(result, SlotFailure):
                logger.warning("Could not place %r: %s", title, result)
                outcome.failure = result
                planned.append(PlannedItem(outcome=outcome))
                continue

            scheduled.append(result)
            outcome.interval = result
            planned.append(
                PlannedItem(
                    outcome=outcome,
                    draft=EventDraft(
                        title=title,
                        interval=result,
                        timezone=timezone,
                        user_input=user_input,
                        duration_minutes=generated.duration_minutes,
                    ),
                )
            )

        return planned

    async def _dispatch(self, planned: Sequence[PlannedItem]) -> None:
        """Write all placed drafts concurrently and record each result."""
        to_send = [item for item in planned if item.draft is not None]
        if not to_send:
            return

        logger.info("Creating %d events in parallel", len(to_send))
        results = await asyncio.gather(
            *(self._calendar_client.insert_event(item.draft) for item in to_send),
            return_exceptions=True,
        )

        for item, result in zip(to_send, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error("Failed to create event %d (%r): %s", item.outcome.index + 1, item.outcome.title, result)
                item.outcome.error = str(result)
            else:
                item.outcome.event = result

    async def list_created_events(
        self,
        *,
        window_days: int = 30,
        now: Optional[DateTime] = None,
    ) -> List[CalendarEvent]:
        """List events created by this tool within ``now ± window_days``."""
        now = now or pendulum.now("UTC")
        events = await self._calendar_client.list_events(
            now.subtract(days=window_days),
            now.add(days=window_days),
        )
        return [event for event in events if event.generated_by == GENERATED_BY_TAG]

    async def delete_created_events(
        self,
        *,
        window_days: int = 60,
        now: Optional[DateTime] = None,
    ) -> DeletionReport:
        """Delete every event created by this tool within ``now ± window_days``."""
        events = await self.list_created_events(window_days=window_days, now=now)

        logger.info("Deleting %d events in parallel", len(events))
        results = await asyncio.gather(
            *(self._calendar_client.delete_event(event.id) for event in events),
            return_exceptions=True,
        )

        report = DeletionReport()
        for event, result in zip(events, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error("Failed to delete event %s: %s", event.id, result)
                report.results.append(
                    DeletionOutcome(id=event.id, title=event.title, deleted=False, error=str(result))
                )
            else:
                report.results.append(DeletionOutcome(id=event.id, title=event.title, deleted=True))

        return report

    @staticmethod
    def _validate_request(
        start_date: DateTime,
        end_date: DateTime,
        count: int,
        constraints: SchedulingConstraints,
    ) -> None:
        if not MIN_BATCH_SIZE <= count <= MAX_BATCH_SIZE:
            raise InvalidRequestError(
                f"Count must be between {MIN_BATCH_SIZE} and {MAX_BATCH_SIZE}, got {count}"
            )
        if not 0 <= constraints.working_hours_start <= 23:
            raise InvalidRequestError(
                f"Earliest start hour must be between 0 and 23, got {constraints.working_hours_start}"
            )
        if start_date > end_date:
            raise InvalidRequestError("startDate must not be after endDate")
