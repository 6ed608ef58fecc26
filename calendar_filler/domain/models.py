"""
Domain models for intervals, scheduling constraints and generated events.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from pendulum import DateTime
from pydantic import BaseModel, Field, field_validator


@dataclass(frozen=True)
class TimeInterval:
    """
    Represents an immutable half-open time interval ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime
    label: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeInterval") -> bool:
        """Check if this interval overlaps with another."""
        return self.start < other.end and other.start < self.end

    def __str__(self) -> str:
        text = f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"
        if self.label:
            text = f"{text} ({self.label})"
        return text


@dataclass(frozen=True)
class DayRange:
    """Absolute bounds every placed interval has to stay inside."""
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Day range start {self.start} is after its end {self.end}")

    def contains(self, interval: TimeInterval) -> bool:
        return self.start <= interval.start and interval.end <= self.end


@dataclass(frozen=True)
class SchedulingConstraints:
    """
    Placement rules for a single batch.

    ``working_hours_end`` may be lower than ``working_hours_start``; the
    window then closes on the following day (8 -> 1 means 08:00 to 01:00).
    Hour validity is checked by the slot finder, which reports an invalid
    window as a failure value instead of raising.
    """
    working_hours_start: int = 8
    working_hours_end: int = 21
    search_increment_minutes: int = 15
    max_attempts: int = 100

    def __post_init__(self):
        if self.search_increment_minutes <= 0:
            raise ValueError("search_increment_minutes must be greater than zero")
        if self.max_attempts <= 0:
            raise ValueError("max_attempts must be greater than zero")

    @property
    def wraps_midnight(self) -> bool:
        return self.working_hours_end < self.working_hours_start

    def window_error(self) -> Optional[str]:
        """Describe why the working-hours window cannot be used, if it can't."""
        for name, hour in (
            ("working_hours_start", self.working_hours_start),
            ("working_hours_end", self.working_hours_end),
        ):
            if not 0 <= hour <= 23:
                return f"{name} must be between 0 and 23, got {hour}"
        if self.working_hours_start == self.working_hours_end:
            return (
                f"Working hours {self.working_hours_start}:00 - "
                f"{self.working_hours_end}:00 describe an empty window"
            )
        return None

    def window_length_minutes(self) -> int:
        hours = (self.working_hours_end - self.working_hours_start) % 24
        return hours * 60


class FailureReason(str, Enum):
    """Why the slot finder could not place an event."""
    INVALID_DURATION = "InvalidDuration"
    SLOT_EXHAUSTED = "SlotExhausted"
    INVALID_WINDOW = "InvalidWindow"


@dataclass(frozen=True)
class SlotFailure:
    """An expected, representable outcome of a slot search that found nothing."""
    reason: FailureReason
    message: str
    attempts: int = 0

    def __str__(self) -> str:
        return f"{self.reason.value}: {self.message}"


class GeneratedEvent(BaseModel):
    """A title and duration proposed by a title generator."""
    title: str = Field(min_length=1)
    duration_minutes: int = Field(alias="duration", gt=0)

    model_config = {"populate_by_name": True}

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value


class GeneratedEventsPayload(BaseModel):
    """The JSON document the title generation service is asked to return."""
    events: List[GeneratedEvent] = Field(default_factory=list)


@dataclass
class EventDraft:
    """
    A scheduled event that has not been written to the calendar yet.
    """
    title: str
    interval: TimeInterval
    timezone: str
    user_input: str
    duration_minutes: int

    def description(self) -> str:
        return (
            f'Generated by Calendar Filler | User request: "{self.user_input}" '
            f"| Duration: {self.duration_minutes} minutes"
        )


@dataclass
class CalendarEvent:
    """An event as read back from a calendar."""
    id: str
    title: str
    start: str
    end: str
    user_input: str = "general activities"
    generated_by: Optional[str] = None
    duration_minutes: Optional[int] = None
    html_link: Optional[str] = None
