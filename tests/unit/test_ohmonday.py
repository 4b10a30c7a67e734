"""Tests for the Oh Monday plugin."""

from __future__ import annotations

import random
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from fakes import CapturingSender

from slackscot.core.registry import PluginRegistry
from slackscot.core.schedule import IntervalUnit, ScheduleDefinition
from slackscot.core.scheduler import ActionScheduler, build_trigger
from slackscot.errors import ConfigurationError
from slackscot.plugins.ohmonday import MONDAY_PICTURES, new_oh_monday
from slackscot.testing import PluginAsserter

LOS_ANGELES = ZoneInfo("America/Los_Angeles")


class TestOhMondayConfiguration:
    """Tests for creating the plugin from its configuration."""

    def test_missing_channels(self) -> None:
        """Test the channel list is required."""
        with pytest.raises(ConfigurationError, match=r"Missing \[channelIDs\]"):
            new_oh_monday({})

    def test_invalid_channels(self) -> None:
        """Test a channel list of the wrong type is rejected."""
        with pytest.raises(ConfigurationError, match="Invalid"):
            new_oh_monday({"channelIDs": 42})

    def test_schedule(self) -> None:
        """Test the greeting runs every Monday at 10:00 by default."""
        action = new_oh_monday({"channelIDs": ["C1"]}).scheduled_actions[0]

        assert action.schedule.weekday == "Monday"
        assert action.schedule.at_time == "10:00"
        assert action.description == "Start the week off with a nice greeting"

    def test_custom_time(self) -> None:
        """Test the greeting time can be configured."""
        action = new_oh_monday({"channelIDs": ["C1"], "atTime": "09:30"}).scheduled_actions[0]
        trigger = build_trigger(action.schedule, LOS_ANGELES)

        fire = trigger.get_next_fire_time(None, datetime(2024, 3, 6, tzinfo=LOS_ANGELES))

        assert fire == datetime(2024, 3, 11, 9, 30, tzinfo=LOS_ANGELES)


class TestOhMondayGreeting:
    """Tests for the greeting itself."""

    async def test_greets_every_channel(self, sender: CapturingSender) -> None:
        """Test one picture is sent to each configured channel."""
        plugin = new_oh_monday({"channelIDs": "C1, C2"}, rng=random.Random(7))

        await plugin.scheduled_actions[0].action(sender)

        assert [channel for _, channel in sender.sent] == ["C1", "C2"]
        assert sender.sent[0][0] == sender.sent[1][0]
        assert sender.sent[0][0] in MONDAY_PICTURES

    async def test_hundred_mondays(self, sender: CapturingSender) -> None:
        """Test 100 scheduled runs send 100 greetings on the channel."""
        registry = PluginRegistry("youppi", "1.0.0", "America/Los_Angeles")
        registry.register(new_oh_monday({"channelIDs": ["C1"]}))
        registry.seal()
        (entry,) = registry.scheduled_actions()
        scheduler = ActionScheduler([entry], sender, LOS_ANGELES)

        for _ in range(100):
            await scheduler.run_action(entry)

        assert len(sender.sent) == 100
        assert all(channel == "C1" for _, channel in sender.sent)
        assert all(picture in MONDAY_PICTURES for picture, _ in sender.sent)

    async def test_runs_on_monday_schedule(self) -> None:
        """Test only the Monday morning schedule greets the channels."""
        plugin = new_oh_monday({"channelIDs": ["C1", "C2"]}, rng=random.Random(3))
        asserter = PluginAsserter("BOT")
        monday = ScheduleDefinition(
            interval=1, unit=IntervalUnit.WEEKS, weekday="Monday", at_time="10:00"
        )

        sent = await asserter.runs_on_schedule(plugin, monday)

        assert sorted(sent) == ["C1", "C2"]
        assert all(len(pictures) == 1 for pictures in sent.values())
        asserter.does_not_run_on_schedule(plugin, ScheduleDefinition(weekday="Friday"))
