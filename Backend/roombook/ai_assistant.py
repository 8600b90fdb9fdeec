"""
Meeting-room booking assistant for the AI chat channel.

The assistant only reads the caller's weekly availability; it never touches
bookings. ``OpenAIAssistant`` is used when ``OPENAI_API_KEY`` is set and falls
back to the deterministic ``FallbackAssistant`` whenever the provider fails or
returns nothing.
"""
import json
import logging
from functools import lru_cache
from typing import Optional, Protocol

from openai import AsyncOpenAI

from .core.config import get_settings

logger = logging.getLogger(__name__)

Availability = Optional[dict[str, list[str]]]

SYSTEM_PROMPT = (
    "You are an assistant specialized in booking meeting rooms. "
    "Answer briefly and pragmatically."
)

CLOSING_SUGGESTION = "I can book a room for you if you tell me the date, the room and the time."


class Assistant(Protocol):
    async def generate(self, message: str, availability: Availability = None) -> str: ...


class FallbackAssistant:
    """Keyword-driven reply used when no AI provider is available."""

    async def generate(self, message: str, availability: Availability = None) -> str:
        return build_fallback_response(message, availability)


def build_fallback_response(message: str, availability: Availability = None) -> str:
    normalized = (message or "").lower()
    parts = ["This is the virtual assistant."]

    if "availab" in normalized or "dispon" in normalized:
        parts.append("Remember to register your available hours per weekday in your profile.")

    if any(word in normalized for word in ("support", "problem", "suporte", "problema")):
        parts.append("If it is urgent, also reach human support at /chat/support.")

    if "room" in normalized or "sala" in normalized:
        parts.append("Check whether the room is already taken before sending the booking.")

    if isinstance(availability, dict):
        days = [day for day, slots in availability.items() if isinstance(slots, list) and slots]
        if days:
            parts.append(f"I see availability registered for: {', '.join(days)}. Use those slots first.")

    parts.append(CLOSING_SUGGESTION)
    return " ".join(parts)


class OpenAIAssistant:
    def __init__(self, client: AsyncOpenAI, model: str, fallback: Optional[Assistant] = None):
        self.client = client
        self.model = model
        self.fallback = fallback or FallbackAssistant()

    async def generate(self, message: str, availability: Availability = None) -> str:
        availability_text = json.dumps(availability) if availability else "Not provided"
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": f"Message: {message}\nUser availability: {availability_text}",
                    },
                ],
                temperature=0.4,
            )
            reply = (completion.choices[0].message.content or "").strip() if completion.choices else ""
            if reply:
                return reply
            logger.warning("AI provider returned an empty reply, using fallback")
        except Exception:
            logger.exception("AI provider call failed, using fallback")

        return await self.fallback.generate(message, availability)


@lru_cache
def get_assistant() -> Assistant:
    """FastAPI dependency; one assistant per process."""
    settings = get_settings()
    if not settings.openai_api_key:
        logger.info("OPENAI_API_KEY not set; AI chat uses the local fallback")
        return FallbackAssistant()
    return OpenAIAssistant(AsyncOpenAI(api_key=settings.openai_api_key), settings.openai_model)
