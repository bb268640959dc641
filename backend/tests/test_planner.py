"""
Tests for planner.py - prompt, reply parsing and the single-request policy.
Does not call the Anthropic API.
"""
import asyncio
import pytest
import json
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import config
import planner
from models import TaskCategory
from planner import (
    PlannerBusyError,
    PlannerError,
    PlannerNotConfiguredError,
    build_system_prompt,
    generate_schedule,
    parse_schedule,
    strip_code_fence,
)
from prompts import SYSTEM_PROMPT

REPLY = json.dumps([
    {"title": "Email triage", "description": "Inbox zero", "startTime": "09:00",
     "durationMinutes": 30, "category": "Work"},
    {"title": "Lunch walk", "description": "", "startTime": "12:30",
     "durationMinutes": 45, "category": "Health"},
])


class TestSystemPrompt:
    """Tests for the planner system prompt."""

    def test_placeholders(self):
        assert "{current_date}" in SYSTEM_PROMPT
        assert "{categories}" in SYSTEM_PROMPT

    def test_build_fills_date_and_categories(self):
        prompt = build_system_prompt("Friday, March 1")
        assert "Friday, March 1" in prompt
        for category in TaskCategory:
            assert category.value in prompt
        assert "09:00" in prompt


class TestParseSchedule:
    """Tests for turning reply text into proposed tasks."""

    def test_parses_tasks(self):
        tasks = parse_schedule(REPLY)

        assert [t.title for t in tasks] == ["Email triage", "Lunch walk"]
        assert tasks[1].start_time == "12:30"
        assert tasks[1].duration_minutes == 45
        assert tasks[1].category == TaskCategory.HEALTH

    def test_strips_code_fence(self):
        assert strip_code_fence("```json\n[1]\n```") == "[1]"
        assert len(parse_schedule(f"```json\n{REPLY}\n```")) == 2

    def test_missing_start_time_defaults_to_nine(self):
        tasks = parse_schedule('[{"title": "Read", "durationMinutes": 20, "category": "Learning"}]')
        assert tasks[0].start_time == "09:00"

    @pytest.mark.parametrize("text", [
        "Sure! Here is your plan.",
        "[]",
        '{"title": "Not a list"}',
        '[{"title": "Bad", "startTime": "25:00", "durationMinutes": 30, "category": "Work"}]',
        '[{"title": "Bad", "startTime": "09:00", "durationMinutes": 30, "category": "Chores"}]',
        '[{"title": "No duration", "startTime": "09:00", "category": "Work"}]',
    ])
    def test_malformed_replies_raise(self, text):
        """Anything but a non-empty list of valid tasks is a PlannerError."""
        with pytest.raises(PlannerError):
            parse_schedule(text)


class TestGenerateSchedule:
    """Tests for generate_schedule with the model call faked."""

    def test_returns_proposed_tasks(self, fake_planner):
        fake_planner.reply = REPLY
        tasks = asyncio.run(generate_schedule("emails then a walk", "Friday, March 1"))

        assert len(tasks) == 2
        assert fake_planner.calls == [("emails then a walk", "Friday, March 1")]

    def test_api_failure_propagates(self, fake_planner):
        fake_planner.error = PlannerError("API error: boom")
        with pytest.raises(PlannerError):
            asyncio.run(generate_schedule("anything", "Friday, March 1"))

    def test_lock_released_after_failure(self, fake_planner):
        """A failed request does not block the next one."""
        fake_planner.error = PlannerError("API error: boom")
        with pytest.raises(PlannerError):
            asyncio.run(generate_schedule("anything", "Friday, March 1"))

        fake_planner.error = None
        fake_planner.reply = REPLY
        assert len(asyncio.run(generate_schedule("again", "Friday, March 1"))) == 2

    def test_second_request_rejected_while_busy(self, monkeypatch):
        """Only one planner request may run at a time."""
        started = None
        release = None

        async def slow_request(user_input, current_date):
            started.set()
            await release.wait()
            return REPLY

        monkeypatch.setattr(planner, "request_schedule", slow_request)

        async def scenario():
            nonlocal started, release
            started, release = asyncio.Event(), asyncio.Event()
            first = asyncio.create_task(generate_schedule("first", "today"))
            await started.wait()
            with pytest.raises(PlannerBusyError):
                await generate_schedule("second", "today")
            release.set()
            return await first

        assert len(asyncio.run(scenario())) == 2

    def test_not_configured(self, monkeypatch):
        """A missing or placeholder key fails before any API call."""
        monkeypatch.setattr(config, "ANTHROPIC_API_KEY", config.PLACEHOLDER_API_KEY)
        with pytest.raises(PlannerNotConfiguredError):
            asyncio.run(generate_schedule("anything", "today"))

    def test_planner_configured(self):
        assert config.planner_configured(None) is False
        assert config.planner_configured("") is False
        assert config.planner_configured(config.PLACEHOLDER_API_KEY) is False
        assert config.planner_configured("sk-ant-123") is True
