"""
calendar-filler - fill a Google Calendar with generated, non-overlapping events.
"""

__version__ = "0.1.0"

GENERATED_BY_TAG = "calendar_filler"
