"""slackscot: a Slack bot engine with pluggable actions.

Example:
    from slackscot import BotBuilder, load_config
    from slackscot.adapters import SlackAdapter
    from slackscot.plugins import new_versioner

    config = load_config("config.yaml")
    adapter = SlackAdapter(config)
    bot = BotBuilder("youppi", config).with_plugin(new_versioner("youppi", "1.0.0")).build(
        adapter, adapter, users=adapter
    )
    asyncio.run(bot.run())
"""

from slackscot._version import __version__
from slackscot.config import BotConfig, load_config
from slackscot.core import (
    ActionDefinition,
    Bot,
    BotBuilder,
    Plugin,
    PluginBuilder,
    ScheduleDefinition,
    ScheduledActionDefinition,
    new_command,
    new_hear_action,
    new_scheduled_action,
)
from slackscot.errors import (
    ConfigurationError,
    PartitionCountError,
    RegistrationError,
    ScheduleError,
    SlackscotError,
    UserNotFoundError,
)
from slackscot.models import (
    Answer,
    IncomingMessage,
    MessageID,
    SelfIdentity,
    UserProfile,
    answer_ephemeral,
    answer_in_existing_thread,
    answer_in_thread,
    answer_in_thread_with_broadcast,
    answer_in_thread_without_broadcast,
    answer_option,
    answer_without_threading,
)

__all__ = [
    "ActionDefinition",
    "Answer",
    "Bot",
    "BotBuilder",
    "BotConfig",
    "ConfigurationError",
    "IncomingMessage",
    "MessageID",
    "PartitionCountError",
    "Plugin",
    "PluginBuilder",
    "RegistrationError",
    "ScheduleDefinition",
    "ScheduleError",
    "ScheduledActionDefinition",
    "SelfIdentity",
    "SlackscotError",
    "UserNotFoundError",
    "UserProfile",
    "__version__",
    "answer_ephemeral",
    "answer_in_existing_thread",
    "answer_in_thread",
    "answer_in_thread_with_broadcast",
    "answer_in_thread_without_broadcast",
    "answer_option",
    "answer_without_threading",
    "load_config",
    "new_command",
    "new_hear_action",
    "new_scheduled_action",
]
