"""
Predefined event titles used when the title generation service is unavailable.
"""

from typing import Dict, List, Tuple

from .models import GeneratedEvent

FALLBACK_EVENTS: Dict[str, List[Tuple[str, int]]] = {
    "work": [
        ("Team Standup Meeting", 30),
        ("Code Review Session", 60),
        ("Project Planning", 90),
        ("Client Call", 45),
        ("Documentation Writing", 60),
        ("Team Retrospective", 60),
        ("Sprint Planning", 120),
        ("One-on-One Meeting", 30),
        ("Team Sync", 30),
        ("Status Update Meeting", 30),
    ],
    "personal": [
        ("Gym Workout", 60),
        ("Grocery Shopping", 45),
        ("Reading Time", 60),
        ("Meal Prep", 45),
        ("Walk in the Park", 30),
        ("Meditation Session", 20),
        ("Call with Family", 60),
        ("Hobby Time", 90),
        ("Coffee with Friends", 60),
        ("Movie Night", 120),
    ],
    "academic": [
        ("Study Session", 90),
        ("Lecture Review", 60),
        ("Assignment Work", 120),
        ("Research Reading", 75),
        ("Online Course", 60),
        ("Group Project Meeting", 90),
        ("Exam Preparation", 180),
        ("Note Review", 45),
        ("Library Study", 120),
        ("Lab Work", 90),
    ],
}

DEFAULT_CATEGORY = "personal"

# Checked in order; the first category with a matching keyword wins.
CATEGORY_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("work", ("work", "job", "office", "meeting")),
    ("academic", ("study", "academic", "school", "college", "university")),
    ("personal", ("gym", "exercise", "fitness", "workout")),
]


def select_category(user_input: str) -> str:
    """Pick the fallback category whose keywords appear in the user's request."""
    text = user_input.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def fallback_events(user_input: str, count: int, offset: int = 0) -> List[GeneratedEvent]:
    """
    Build ``count`` events from the category matching ``user_input``.

    Entries are reused in order once the list runs out; repeats get a
    round number, e.g. "Gym Workout (2)". ``offset`` continues the
    numbering when topping up a partial list.
    """
    entries = FALLBACK_EVENTS[select_category(user_input)]
    events: List[GeneratedEvent] = []

    for index in range(offset, offset + count):
        title, duration = entries[index % len(entries)]
        round_number = index // len(entries) + 1
        if round_number > 1:
            title = f"{title} ({round_number})"
        events.append(GeneratedEvent(title=title, duration_minutes=duration))

    return events
