"""Oh Monday plugin: starts the week with a greeting picture."""

from __future__ import annotations

import random
from typing import Any

import structlog

from ..core.plugin import Plugin, PluginBuilder, new_scheduled_action
from ..core.schedule import IntervalUnit, ScheduleDefinition
from ..errors import ConfigurationError
from ..interfaces.services import RealTimeSender

log = structlog.get_logger()

OH_MONDAY_PLUGIN_NAME = "ohMonday"

CHANNEL_IDS_KEY = "channelIDs"
AT_TIME_KEY = "atTime"
DEFAULT_AT_TIME = "10:00"

MONDAY_PICTURES = (
    "https://media.giphy.com/media/3og0IHx11gZBccA98c/giphy-downsized.gif",
    "https://media.giphy.com/media/vguRpQzGag7M5h4UVt/giphy-downsized.gif",
    "https://media.giphy.com/media/9GI7UlOQ6uU95v82q7/giphy-downsized.gif",
    "https://media.giphy.com/media/hu3Z1fwuOZh3a/giphy-downsized.gif",
    "https://media.giphy.com/media/5ZZSYqvcH6QppFQGI5/giphy-downsized.gif",
    "https://media.giphy.com/media/7mMRX7gWzDVwA/giphy-downsized.gif",
    "https://media.giphy.com/media/Mv6t9sASpgTEA/giphy.gif",
    "https://media.giphy.com/media/GGFMa2baxgoLK/giphy.gif",
    "https://media.giphy.com/media/WET6Ed65VUkuY/giphy-downsized.gif",
    "https://media.giphy.com/media/26wkRxKJ9yUZzlorK/giphy-downsized.gif",
)


def _channel_ids(value: Any) -> list[str]:
    if isinstance(value, str):
        return [c.strip() for c in value.split(",") if c.strip()]
    if isinstance(value, (list, tuple)):
        return [str(c) for c in value]
    raise ConfigurationError(
        f"Invalid [{CHANNEL_IDS_KEY}] configuration for plugin [{OH_MONDAY_PLUGIN_NAME}]: {value!r}"
    )


def new_oh_monday(plugin_config: dict[str, Any], rng: random.Random | None = None) -> Plugin:
    """
    Create the Oh Monday plugin from its ``plugins.ohMonday`` configuration.

    Args:
        plugin_config: Mapping with ``channelIDs`` (list or comma separated
            string) and an optional ``atTime`` ("HH:MM", defaults to 10:00)
        rng: Picture selection randomness

    Raises:
        ConfigurationError: If ``channelIDs`` is missing or invalid
    """
    if CHANNEL_IDS_KEY not in plugin_config:
        raise ConfigurationError(
            f"Missing [{CHANNEL_IDS_KEY}] configuration key for plugin [{OH_MONDAY_PLUGIN_NAME}]"
        )
    channels = _channel_ids(plugin_config[CHANNEL_IDS_KEY])
    at_time = str(plugin_config.get(AT_TIME_KEY, DEFAULT_AT_TIME))

    schedule = ScheduleDefinition(
        interval=1, unit=IntervalUnit.WEEKS, weekday="Monday", at_time=at_time
    )
    schedule.validate()

    selection = rng or random.Random()

    async def greet(sender: RealTimeSender) -> None:
        picture = selection.choice(MONDAY_PICTURES)
        for channel_id in channels:
            log.debug("monday_greeting_sending", channel_id=channel_id, picture=picture)
            await sender.send_new_message(picture, channel_id)

    return (
        PluginBuilder(OH_MONDAY_PLUGIN_NAME)
        .with_scheduled_action(
            new_scheduled_action()
            .with_schedule(schedule)
            .with_action(greet)
            .with_description("Start the week off with a nice greeting")
            .build()
        )
        .build()
    )
