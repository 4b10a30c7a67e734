"""Tests for the plugin registry and the help command."""

from __future__ import annotations

import pytest

from slackscot.core.help import HELP_PLUGIN_NAME, is_help_request, render_help
from slackscot.core.plugin import (
    Plugin,
    PluginBuilder,
    new_command,
    new_hear_action,
    new_scheduled_action,
)
from slackscot.core.registry import ActionID, ActionKind, PluginRegistry
from slackscot.core.schedule import ScheduleDefinition
from slackscot.errors import RegistrationError
from slackscot.models.answer import Answer
from slackscot.models.message import IncomingMessage, MessageID


def incoming(text: str) -> IncomingMessage:
    msg_id = MessageID("C1", "1.0")
    return IncomingMessage(msg_id, msg_id, "U1", "C1", text, text)


def sample_plugins() -> list[Plugin]:
    versioner = (
        PluginBuilder("versioner")
        .with_command(
            new_command().with_usage("version").with_description("Reply with version").build()
        )
        .with_command(
            new_command().with_usage("secret").with_description("Hidden").hidden().build()
        )
        .build()
    )
    karma = (
        PluginBuilder("karma")
        .with_hear_action(
            new_hear_action().with_usage("thing++").with_description("Track karma").build()
        )
        .with_command(
            new_command().with_usage("top <n>").with_descriptionf("Top %s things", "n").build()
        )
        .with_command_namespacing()
        .build()
    )
    greeter = (
        PluginBuilder("ohMonday")
        .with_hear_action(new_hear_action().with_description("Say hi back").build())
        .with_scheduled_action(
            new_scheduled_action()
            .with_schedule(ScheduleDefinition(weekday="Monday", at_time="10:00"))
            .with_action(lambda sender: None)
            .with_description("Greet")
            .build()
        )
        .with_scheduled_action(
            new_scheduled_action().with_action(lambda sender: None).hidden().build()
        )
        .build()
    )
    return [versioner, karma, greeter]


class TestRenderHelp:
    """Tests for the help text."""

    def test_full_text(self) -> None:
        """Test the rendered help for a mix of actions."""
        text = render_help("youppi", "1.0.0", "America/Los_Angeles", sample_plugins())

        assert text == (
            "I'm `youppi` (engine version `1.0.0`) that listens to the team's chat "
            "and provides automated functions.\n"
            "\n"
            "I currently support the following commands:\n"
            "\t• `version` - Reply with version\n"
            "\t• `karma top <n>` - Top n things\n"
            "\n"
            "And listen for the following:\n"
            "\t• `thing++` - Track karma\n"
            "\t• Say hi back\n"
            "\n"
            "And do those things periodically:\n"
            "\t• [`ohMonday`] `Every Monday at 10:00` (`America/Los_Angeles`) - Greet\n"
        )

    def test_no_plugins(self) -> None:
        """Test the help of a bot without plugins only introduces it."""
        text = render_help("youppi", "1.0.0", "Local", [])

        assert text.count("\n") == 1
        assert "following" not in text

    def test_every_visible_action_once(self) -> None:
        """Test each visible action is listed exactly once."""
        plugins = sample_plugins()
        text = render_help("youppi", "1.0.0", "Local", plugins)

        for plugin in plugins:
            for action in [*plugin.commands, *plugin.hear_actions]:
                if not action.hidden:
                    assert text.count(f" {action.description}\n") == 1
        assert "Hidden" not in text


class TestIsHelpRequest:
    """Tests for help detection."""

    @pytest.mark.parametrize("text", ["help", "HELP", " Help "])
    def test_help(self, text: str) -> None:
        assert is_help_request(incoming(text))

    @pytest.mark.parametrize("text", ["helpme", "help me", "please help", ""])
    def test_not_help(self, text: str) -> None:
        assert not is_help_request(incoming(text))


class TestPluginRegistry:
    """Tests for PluginRegistry."""

    def test_action_ids(self) -> None:
        """Test actions get their plugin, kind and index as identity."""
        registry = PluginRegistry("youppi", "1.0.0")
        for plugin in sample_plugins():
            registry.register(plugin)

        command_ids = [a.id for a in registry.commands()]
        hear_ids = [a.id for a in registry.hear_actions()]

        assert command_ids == [
            ActionID("versioner", ActionKind.COMMAND, 0),
            ActionID("versioner", ActionKind.COMMAND, 1),
            ActionID("karma", ActionKind.COMMAND, 0),
            ActionID(HELP_PLUGIN_NAME, ActionKind.COMMAND, 0),
        ]
        assert hear_ids == [
            ActionID("karma", ActionKind.HEAR_ACTION, 0),
            ActionID("ohMonday", ActionKind.HEAR_ACTION, 0),
        ]
        assert str(command_ids[2]) == "karma.command[0]"

    def test_help_is_last_and_answers(self) -> None:
        """Test the help command comes last and answers with the help text."""
        registry = PluginRegistry("youppi", "1.0.0", "Local")
        registry.register(sample_plugins()[0])

        help_action = registry.commands()[-1]
        answer = help_action.action.answer(incoming("help"))

        assert help_action.plugin is registry.help_plugin
        assert isinstance(answer, Answer)
        assert answer.text.startswith("I'm `youppi`")

    def test_scheduled_actions(self) -> None:
        """Test scheduled actions keep their plugin and index."""
        registry = PluginRegistry("youppi", "1.0.0")
        for plugin in sample_plugins():
            registry.register(plugin)

        scheduled = registry.scheduled_actions()

        assert [(s.plugin.name, s.index) for s in scheduled] == [("ohMonday", 0), ("ohMonday", 1)]

    def test_register_after_seal(self) -> None:
        """Test registration is refused once sealed."""
        registry = PluginRegistry("youppi", "1.0.0")
        registry.seal()

        with pytest.raises(RegistrationError, match="late"):
            registry.register(Plugin(name="late"))

    def test_seal_is_idempotent(self) -> None:
        """Test sealing twice doesn't duplicate actions."""
        registry = PluginRegistry("youppi", "1.0.0")
        registry.register(sample_plugins()[0])

        registry.seal()
        registry.seal()

        assert len(registry.commands()) == 3
        assert registry.sealed

    def test_plugins_excludes_help(self) -> None:
        """Test the registered plugin list doesn't include help."""
        registry = PluginRegistry("youppi", "1.0.0")
        registry.register(Plugin(name="empty"))
        registry.seal()

        assert [p.name for p in registry.plugins] == ["empty"]

    def test_duplicate_plugin_name(self) -> None:
        """Test a second plugin with a taken name is refused."""
        registry = PluginRegistry("youppi", "1.0.0")
        registry.register(Plugin(name="dup"))

        with pytest.raises(RegistrationError, match=r"\[dup\] is already registered"):
            registry.register(Plugin(name="dup"))

        assert [p.name for p in registry.plugins] == ["dup"]

    def test_help_name_is_reserved(self) -> None:
        """Test a plugin can't take the name of the built-in help."""
        registry = PluginRegistry("youppi", "1.0.0")

        with pytest.raises(RegistrationError, match="reserved"):
            registry.register(Plugin(name=HELP_PLUGIN_NAME))

    def test_action_ids_are_unique(self) -> None:
        """Test every registered action has its own identity."""
        registry = PluginRegistry("youppi", "1.0.0")
        for plugin in sample_plugins():
            registry.register(plugin)

        ids = [a.id for a in [*registry.commands(), *registry.hear_actions()]]

        assert len(set(ids)) == len(ids)
