"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .event_filler import (
    BatchCreationReport,
    CalendarClientProtocol,
    DeletionReport,
    EventFillerService,
)

__all__ = ["BatchCreationReport", "CalendarClientProtocol", "DeletionReport", "EventFillerService"]
