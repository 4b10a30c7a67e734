"""Core engine components.

- Bot: Dispatcher, partition workers and lifecycle
- BotBuilder: Assembles a bot with its plugins and closers
- PluginRegistry: Ordered plugin actions and the help command
- PartitionRouter: Routes message events onto partition queues
- MessageProcessor: Matches actions and reconciles replies
- ResponseTracker: Replies sent for each original message
- ActionScheduler: Runs scheduled actions
- CachingUserInfoFinder: Read-through user info cache
"""

from slackscot.core.bot import Bot, Closer, DriverRealTimeSender
from slackscot.core.builder import BotBuilder
from slackscot.core.plugin import (
    ActionBuilder,
    ActionDefinition,
    Plugin,
    PluginBuilder,
    ScheduledActionBuilder,
    ScheduledActionDefinition,
    new_command,
    new_hear_action,
    new_scheduled_action,
)
from slackscot.core.processor import MessageProcessor, ReplyDefaults
from slackscot.core.registry import ActionID, ActionKind, PluginRegistry
from slackscot.core.responses import OutboundRecord, ResponseTracker
from slackscot.core.routing import PartitionRouter, partition_for
from slackscot.core.schedule import IntervalUnit, ScheduleDefinition
from slackscot.core.scheduler import ActionScheduler, build_trigger
from slackscot.core.uploads import OptionsFileUploader, upload_in_channels, upload_in_thread
from slackscot.core.users import CachingUserInfoFinder

__all__ = [
    "ActionBuilder",
    "ActionDefinition",
    "ActionID",
    "ActionKind",
    "ActionScheduler",
    "Bot",
    "BotBuilder",
    "CachingUserInfoFinder",
    "Closer",
    "DriverRealTimeSender",
    "IntervalUnit",
    "MessageProcessor",
    "OptionsFileUploader",
    "OutboundRecord",
    "PartitionRouter",
    "Plugin",
    "PluginBuilder",
    "PluginRegistry",
    "ReplyDefaults",
    "ResponseTracker",
    "ScheduleDefinition",
    "ScheduledActionBuilder",
    "ScheduledActionDefinition",
    "build_trigger",
    "new_command",
    "new_hear_action",
    "new_scheduled_action",
    "partition_for",
    "upload_in_channels",
    "upload_in_thread",
]
