"""
Domain layer - Pure business logic without external dependencies.
"""

from .models import (
    CalendarEvent,
    DayRange,
    EventDraft,
    FailureReason,
    GeneratedEvent,
    SchedulingConstraints,
    SlotFailure,
    TimeInterval,
)
from .slot_finder import (
    CandidateRange,
    SlotFinder,
    format_duration,
    generate_time_range,
    intervals_overlap,
)

__all__ = [
    "CalendarEvent",
    "CandidateRange",
    "DayRange",
    "EventDraft",
    "FailureReason",
    "GeneratedEvent",
    "SchedulingConstraints",
    "SlotFailure",
    "SlotFinder",
    "TimeInterval",
    "format_duration",
    "generate_time_range",
    "intervals_overlap",
]
