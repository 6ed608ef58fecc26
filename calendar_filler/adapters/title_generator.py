"""
Event title generation: an AI service with a predefined fallback table.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional, Protocol

import requests
from pydantic import ValidationError

from ..domain.exceptions import TitleGenerationError
from ..domain.fallback_events import fallback_events
from ..domain.models import GeneratedEvent, GeneratedEventsPayload

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?\n?|\n?```")

EVENT_GENERATION_PROMPT = """\
You are an intelligent calendar event generator. Based on the user's input "{user_input}", \
generate {count} diverse and realistic event titles that would commonly appear in a calendar.

Requirements:
1. Generate exactly {count} different event titles
2. Events should be diverse and realistic for a calendar
3. Each event should have an appropriate duration (30 minutes to 4 hours)
4. Consider common daily activities, meetings, tasks, and personal events
5. Make events specific and actionable (e.g., "Team Standup Meeting" instead of just "Meeting")
6. Include a mix of work, personal, and academic events if applicable
7. Response must be valid JSON format only

Return the response in this exact JSON format:
{{
  "events": [
    {{"title": "Event Title 1", "duration": 60}},
    {{"title": "Event Title 2", "duration": 30}},
    {{"title": "Event Title 3", "duration": 90}}
  ]
}}

Duration guidelines:
- Quick tasks: 30-45 minutes
- Standard meetings: 60 minutes
- Long meetings/deep work: 90-180 minutes
- Personal activities: 60-120 minutes
- Exercise: 60-90 minutes
- Study sessions: 90-120 minutes
- Travel: 30-180 minutes
- Appointments: 30-90 minutes
- Hobbies: 60-180 minutes
- Fitness activities: 45-90 minutes
- Professional development: 60-120 minutes

Note: Events will be scheduled without overlaps, starting from the user's preferred start time.
"""


def build_prompt(user_input: str, count: int) -> str:
    return EVENT_GENERATION_PROMPT.format(user_input=user_input, count=count)


class TitleGeneratorProtocol(Protocol):
    """Protocol describing how the service obtains event titles."""

    def generate_titles(self, user_input: str, count: int) -> List[GeneratedEvent]:
        """Return up to ``count`` titles with durations for ``user_input``."""


class OpenRouterTitleGenerator:
    """
    Generates titles through the OpenRouter chat completions API.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "z-ai/glm-4.5-air:free",
        endpoint: str = "https://openrouter.ai/api/v1/chat/completions",
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.model = model
        self.endpoint = endpoint
        self.timeout = timeout

    def generate_titles(self, user_input: str, count: int) -> List[GeneratedEvent]:
        """
        Ask the model for ``count`` events.

        Raises:
            TitleGenerationError: If the request fails or the reply is unusable
        """
        if not self.api_key:
            raise TitleGenerationError("No OpenRouter API key configured")

        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": build_prompt(user_input, count)}],
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": "Calendar Filler",
        }

        try:
            response = requests.post(
                self.endpoint,
                headers=headers,
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as exc:
            raise TitleGenerationError(f"OpenRouter API request failed: {exc}") from exc
        except ValueError as exc:
            raise TitleGenerationError(f"OpenRouter API returned invalid JSON: {exc}") from exc

        events = parse_completion(data)
        logger.debug("OpenRouter generated %d event(s) for %r", len(events), user_input)
        return events[:count]


def parse_completion(data: Dict[str, Any]) -> List[GeneratedEvent]:
    """
    Extract the generated events from a chat completions response.

    The model may wrap its JSON in Markdown code fences; those are removed
    before parsing.
    """
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        content = None

    if not content:
        raise TitleGenerationError("No content received from OpenRouter API")

    cleaned = _CODE_FENCE.sub("", content).strip()
    try:
        payload = GeneratedEventsPayload.model_validate(json.loads(cleaned))
    except (ValueError, ValidationError) as exc:
        logger.debug("Raw model content: %s", content)
        raise TitleGenerationError(f"Failed to parse AI response as JSON: {exc}") from exc

    if not payload.events:
        raise TitleGenerationError("No events generated in response")

    return payload.events


class FallbackTitleGenerator:
    """Picks titles from the predefined table matching the user's request."""

    def generate_titles(self, user_input: str, count: int) -> List[GeneratedEvent]:
        return fallback_events(user_input, count)


class ResilientTitleGenerator:
    """
    Uses the primary generator and falls back to the predefined table.

    When the primary returns fewer than ``count`` events, the rest are
    filled from the fallback table.
    """

    def __init__(self, primary: TitleGeneratorProtocol, fallback: Optional[FallbackTitleGenerator] = None):
        self.primary = primary
        self.fallback = fallback or FallbackTitleGenerator()

    def generate_titles(self, user_input: str, count: int) -> List[GeneratedEvent]:
        try:
            events = list(self.primary.generate_titles(user_input, count))[:count]
        except TitleGenerationError as exc:
            logger.warning("Title generation failed, using fallback events: %s", exc)
            return self.fallback.generate_titles(user_input, count)

        missing = count - len(events)
        if missing > 0:
            logger.info("Title generator returned %d of %d events; topping up", len(events), count)
            events.extend(fallback_events(user_input, missing, offset=len(events)))

        return events
