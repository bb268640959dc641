"""
Smart planner: turns a free-text description of a day into proposed tasks.

Only one planner request may be outstanding at a time. Every failure, from the
API call to a malformed reply, surfaces as PlannerError so the caller can show
a message and commit nothing.
"""
import asyncio
import json
import logging
from typing import Optional

import anthropic
from pydantic import TypeAdapter, ValidationError

import config
from models import ProposedTask, TaskCategory
from prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)

USER_MESSAGE = "Something went wrong with the AI planner. Please try again."

_proposed_list = TypeAdapter(list[ProposedTask])
_request_lock = asyncio.Lock()
_client: Optional[anthropic.AsyncAnthropic] = None


class PlannerError(Exception):
    """The planner call failed or returned something unusable."""


class PlannerBusyError(PlannerError):
    """Another planner request is still running."""


class PlannerNotConfiguredError(PlannerError):
    """No Anthropic API key is set."""


def get_client() -> anthropic.AsyncAnthropic:
    global _client
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=config.ANTHROPIC_API_KEY)
    return _client


def build_system_prompt(current_date: str) -> str:
    categories = ", ".join(category.value for category in TaskCategory)
    return SYSTEM_PROMPT.format(current_date=current_date, categories=categories)


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```json ... ``` block if the model added one."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = lines[1:]  # Remove first line (```json)
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines)
    return text


def parse_schedule(text: str) -> list[ProposedTask]:
    """Parse the planner reply into proposed tasks. Raises PlannerError."""
    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise PlannerError(f"Failed to parse AI response: {e}") from e

    if not isinstance(data, list):
        raise PlannerError(f"Expected a JSON array, got {type(data).__name__}")
    if not data:
        raise PlannerError("AI response contained no tasks")

    try:
        return _proposed_list.validate_python(data)
    except ValidationError as e:
        raise PlannerError(f"AI response has invalid tasks: {e.error_count()} errors") from e


async def request_schedule(user_input: str, current_date: str) -> str:
    """Call the model and return its raw text reply."""
    if not config.planner_configured(config.ANTHROPIC_API_KEY):
        raise PlannerNotConfiguredError("API key not configured")

    try:
        response = await get_client().messages.create(
            model=config.PLANNER_MODEL,
            max_tokens=config.PLANNER_MAX_TOKENS,
            system=build_system_prompt(current_date),
            messages=[{"role": "user", "content": user_input}]
        )
    except anthropic.APIError as e:
        raise PlannerError(f"API error: {e}") from e

    text_blocks = [block.text for block in response.content if getattr(block, "type", None) == "text"]
    if not text_blocks:
        raise PlannerError("AI response contained no text")
    ai_text = "".join(text_blocks)
    logger.debug("Planner response: %s", ai_text)
    return ai_text


async def generate_schedule(user_input: str, current_date: str) -> list[ProposedTask]:
    """
    Turn user_input into proposed tasks for the day described by current_date.
    Raises PlannerBusyError if another request is in flight.
    """
    if _request_lock.locked():
        raise PlannerBusyError("A planner request is already running")

    async with _request_lock:
        text = await request_schedule(user_input, current_date)
        proposed = parse_schedule(text)
    logger.info("Planner proposed %d tasks", len(proposed))
    return proposed
