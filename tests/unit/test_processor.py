"""Tests for message processing and reply reconciliation."""

from __future__ import annotations

import pytest
from fakes import RecordingDriver, deleted_message, edited_message, new_message

from slackscot.core.plugin import Plugin, PluginBuilder, new_command, new_hear_action
from slackscot.core.processor import (
    DEFAULT_ANSWER_TEXT,
    MessageProcessor,
    ReplyDefaults,
    strip_self_mention,
)
from slackscot.core.registry import ActionID, ActionKind, PluginRegistry
from slackscot.core.responses import OutboundRecord, ResponseTracker
from slackscot.models.answer import (
    Answer,
    AnswerOption,
    answer_ephemeral,
    answer_in_thread_without_broadcast,
)
from slackscot.models.events import MessageEvent
from slackscot.models.message import IncomingMessage, MessageID, SelfIdentity
from slackscot.utils.metrics import MetricsRegistry


def make_processor(
    driver: RecordingDriver,
    identity: SelfIdentity,
    *plugins: Plugin,
    defaults: ReplyDefaults | None = None,
    metrics: MetricsRegistry | None = None,
) -> MessageProcessor:
    registry = PluginRegistry("youppi", "1.0.0")
    for plugin in plugins:
        registry.register(plugin)
    registry.seal()
    processor = MessageProcessor(registry, driver, ResponseTracker(10), defaults, metrics)
    processor.self_identity = identity
    return processor


def text_command(
    plugin: str, text: str, reply: str, options: list[AnswerOption] | None = None
) -> Plugin:
    """A plugin with one command answering ``reply`` to ``text``."""

    def match(m: IncomingMessage) -> bool:
        return m.normalized_text == text

    return (
        PluginBuilder(plugin)
        .with_command(
            new_command()
            .with_matcher(match)
            .with_answerer(lambda m: Answer(text=reply, options=list(options or [])))
            .with_usage(text)
            .with_description(f"Reply {reply}")
            .build()
        )
        .build()
    )


def version_plugin() -> Plugin:
    return text_command("versioner", "version", "I'm X, version 1.0.0")


def letters_plugin() -> Plugin:
    """Commands answering to the words ``a``, ``b`` and ``c``."""
    builder = PluginBuilder("letters")
    for letter in ("a", "b", "c"):
        builder.with_command(
            new_command()
            .with_matcher(lambda m, letter=letter: letter in m.normalized_text.split())
            .with_answerer(lambda m, letter=letter: Answer(text=f"got {letter}"))
            .build()
        )
    return builder.build()


ORIGIN = MessageID("C1", "100.0")


class TestStripSelfMention:
    """Tests for stripping a leading mention of the bot."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("<@BOT> version", "version"),
            ("<@BOT>: version", "version"),
            ("  <@BOT>   version  ", "version"),
            ("BOT: version", "version"),
            ("@BOT version", "version"),
            ("youppi: version", "version"),
            ("@youppi version", "version"),
        ],
    )
    def test_mention_forms(self, identity: SelfIdentity, text: str, expected: str) -> None:
        """Test every accepted mention form is stripped."""
        assert strip_self_mention(text, identity) == (True, expected)

    def test_no_mention(self, identity: SelfIdentity) -> None:
        """Test text without a mention is only trimmed."""
        assert strip_self_mention("  version ", identity) == (False, "version")

    def test_mention_of_someone_else(self, identity: SelfIdentity) -> None:
        """Test mentions of other users are kept."""
        assert strip_self_mention("<@U2> version", identity) == (False, "<@U2> version")

    def test_unknown_identity(self) -> None:
        """Test nothing is stripped before the identity is known."""
        assert strip_self_mention("<@BOT> version", None) == (False, "<@BOT> version")


class TestEditUpdatesPriorReply:
    """A new message, its edit and its deletion."""

    async def test_send_update_delete(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test an edit updates the prior reply and a delete removes it."""
        processor = make_processor(driver, identity, version_plugin())

        await processor.process(new_message("<@BOT> version", ts="100.0"))
        assert driver.calls == [
            ("send", "C1", "I'm X, version 1.0.0", None, False, MessageID("C1", "200.0"))
        ]

        await processor.process(edited_message("<@BOT> version", edited_ts="100.0", ts="101.0"))
        assert driver.calls[1:] == [("update", MessageID("C1", "200.0"), "I'm X, version 1.0.0")]

        await processor.process(deleted_message(deleted_ts="100.0"))
        assert driver.calls[2:] == [("delete", MessageID("C1", "200.0"))]
        assert processor.tracker.get(ORIGIN) is None

    async def test_reply_is_recorded(self, driver: RecordingDriver, identity: SelfIdentity) -> None:
        """Test the sent reply is recorded against the original message."""
        processor = make_processor(driver, identity, version_plugin())

        await processor.process(new_message("<@BOT> version"))

        assert processor.tracker.get(ORIGIN) == [
            OutboundRecord(
                ActionID("versioner", ActionKind.COMMAND, 0), MessageID("C1", "200.0")
            )
        ]

    async def test_edit_without_record_is_new(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test an edit of a message never answered sends a new reply."""
        processor = make_processor(driver, identity, version_plugin())

        await processor.process(edited_message("<@BOT> version"))

        assert [c[0] for c in driver.calls] == ["send"]

    async def test_delete_without_record(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test deleting a message never answered does nothing."""
        processor = make_processor(driver, identity, version_plugin())

        await processor.process(deleted_message())

        assert driver.calls == []


class TestReconciliation:
    """Reconciling the answers to an edit with the prior replies."""

    async def test_update_send_and_delete(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test each action identity gets exactly one update, send or delete."""
        processor = make_processor(driver, identity, letters_plugin())

        await processor.process(new_message("<@BOT> a b"))
        assert [c[0] for c in driver.calls] == ["send", "send"]
        driver.calls.clear()

        await processor.process(edited_message("<@BOT> b c"))

        assert driver.calls == [
            ("update", MessageID("C1", "201.0"), "got b"),
            ("send", "C1", "got c", None, False, MessageID("C1", "202.0")),
            ("delete", MessageID("C1", "200.0")),
        ]
        assert [r.message_id.timestamp for r in processor.tracker.get(ORIGIN) or []] == [
            "201.0",
            "202.0",
        ]

    async def test_delete_removes_every_reply(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test deleting the original message deletes all its replies."""
        processor = make_processor(driver, identity, letters_plugin())
        await processor.process(new_message("<@BOT> a b c"))
        driver.calls.clear()

        await processor.process(deleted_message())

        assert driver.calls == [
            ("delete", MessageID("C1", "200.0")),
            ("delete", MessageID("C1", "201.0")),
            ("delete", MessageID("C1", "202.0")),
        ]
        assert ORIGIN not in processor.tracker

    async def test_edit_to_unknown_command(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test an edit no command answers replaces the reply with the default answer."""
        processor = make_processor(driver, identity, version_plugin())
        await processor.process(new_message("<@BOT> version"))
        driver.calls.clear()

        await processor.process(edited_message("<@BOT> nothing"))

        assert driver.calls == [
            ("send", "C1", DEFAULT_ANSWER_TEXT, None, False, MessageID("C1", "201.0")),
            ("delete", MessageID("C1", "200.0")),
        ]

    async def test_failed_update_keeps_prior_reply(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test a failed update leaves the prior reply recorded."""
        metrics = MetricsRegistry()
        processor = make_processor(driver, identity, version_plugin(), metrics=metrics)
        await processor.process(new_message("<@BOT> version"))

        driver.failing = {"update"}
        await processor.process(edited_message("<@BOT> version"))

        records = processor.tracker.get(ORIGIN)
        assert records is not None
        assert records[0].message_id == MessageID("C1", "200.0")
        assert metrics.outbound_errors.get({"operation": "update"}) == 1

        driver.failing = set()
        await processor.process(deleted_message())
        assert driver.calls[-1] == ("delete", MessageID("C1", "200.0"))

    async def test_failed_stale_delete_keeps_record(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test a reply that couldn't be deleted stays recorded."""
        processor = make_processor(driver, identity, letters_plugin())
        await processor.process(new_message("<@BOT> a b"))

        driver.failing = {"delete"}
        await processor.process(edited_message("<@BOT> b"))

        records = processor.tracker.get(ORIGIN) or []
        assert sorted(r.message_id.timestamp for r in records) == ["200.0", "201.0"]

    async def test_failed_withdrawal_stays_recorded(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test replies that couldn't be withdrawn on delete stay recorded."""
        processor = make_processor(driver, identity, letters_plugin())
        await processor.process(new_message("<@BOT> a b"))

        driver.failing = {"delete"}
        await processor.process(deleted_message())

        assert len(processor.tracker.get(ORIGIN) or []) == 2

        driver.failing = set()
        await processor.process(deleted_message())

        assert ORIGIN not in processor.tracker

    async def test_failed_send_is_not_recorded(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test nothing is recorded when sending fails."""
        metrics = MetricsRegistry()
        processor = make_processor(driver, identity, version_plugin(), metrics=metrics)
        driver.failing = {"send"}

        await processor.process(new_message("<@BOT> version"))

        assert processor.tracker.get(ORIGIN) is None
        assert metrics.outbound_errors.get({"operation": "send"}) == 1


class TestAddressing:
    """Deciding between commands and hear actions."""

    async def test_plain_text_in_channel_is_not_a_command(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test text without a mention on a channel doesn't trigger commands."""
        processor = make_processor(driver, identity, version_plugin())

        await processor.process(new_message("version", channel="C1"))

        assert driver.calls == []

    async def test_direct_message_is_a_command(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test text on a direct message channel triggers commands."""
        processor = make_processor(driver, identity, version_plugin())

        await processor.process(new_message("version", channel="DXYZ"))

        assert driver.calls == [
            ("send", "DXYZ", "I'm X, version 1.0.0", None, False, MessageID("DXYZ", "200.0"))
        ]

    async def test_matcher_sees_normalized_text(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test the mention is stripped from the text a matcher sees."""
        seen: list[str] = []

        def match(m: IncomingMessage) -> bool:
            seen.append(m.normalized_text)
            return m.normalized_text == "version"

        plugin = (
            PluginBuilder("spy")
            .with_command(
                new_command()
                .with_matcher(match)
                .with_answerer(lambda m: Answer(text="ok"))
                .build()
            )
            .build()
        )
        processor = make_processor(driver, identity, plugin)

        await processor.process(new_message("<@BOT> version", channel="C1"))

        assert seen == ["version"]
        assert len(driver.calls_of("send")) == 1

    async def test_hear_action_on_overheard_message(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test hear actions answer messages not addressed to the bot."""
        plugin = (
            PluginBuilder("greeter")
            .with_hear_action(
                new_hear_action()
                .with_matcher(lambda m: "hello" in m.normalized_text)
                .with_answerer(lambda m: Answer(text=f"hello <@{m.user_id}>"))
                .build()
            )
            .build()
        )
        processor = make_processor(driver, identity, plugin)

        await processor.process(new_message("well hello there", user="U7"))

        assert driver.calls_of("send")[0][2] == "hello <@U7>"

    async def test_hear_actions_ignore_commands(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test hear actions don't see messages addressed to the bot."""
        plugin = (
            PluginBuilder("greeter")
            .with_hear_action(
                new_hear_action().with_answerer(lambda m: Answer(text="heard")).build()
            )
            .build()
        )
        processor = make_processor(driver, identity, plugin)

        await processor.process(new_message("<@BOT> hello"))

        assert [c[2] for c in driver.calls_of("send")] == [DEFAULT_ANSWER_TEXT]

    async def test_own_messages_are_ignored(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test the bot never answers itself."""
        processor = make_processor(driver, identity, version_plugin())

        await processor.process(new_message("version", channel="D1", user="BOT"))

        assert driver.calls == []

    async def test_namespaced_command(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test namespaced commands require and strip the plugin name."""
        seen: list[str] = []

        def match(m: IncomingMessage) -> bool:
            seen.append(m.normalized_text)
            return m.normalized_text.startswith("top")

        plugin = (
            PluginBuilder("karma")
            .with_command(
                new_command()
                .with_matcher(match)
                .with_answerer(lambda m: Answer(text="top"))
                .build()
            )
            .with_command_namespacing()
            .build()
        )
        processor = make_processor(driver, identity, plugin)

        await processor.process(new_message("<@BOT> top 2", ts="1.0"))
        await processor.process(new_message("<@BOT> karma top 2", ts="2.0"))

        assert seen == ["top 2"]
        assert [c[2] for c in driver.calls_of("send")] == [DEFAULT_ANSWER_TEXT, "top"]


class TestAnswers:
    """Default, help, empty and ephemeral answers."""

    async def test_default_answer(self, driver: RecordingDriver, identity: SelfIdentity) -> None:
        """Test a command nothing answers gets the default answer."""
        processor = make_processor(driver, identity, version_plugin())

        await processor.process(new_message("<@BOT> dance"))

        assert driver.calls_of("send")[0][2] == DEFAULT_ANSWER_TEXT
        default_id = ActionID("default", ActionKind.DEFAULT_ACTION, 0)
        assert (processor.tracker.get(ORIGIN) or [])[0].action_id == default_id

    async def test_help(self, driver: RecordingDriver, identity: SelfIdentity) -> None:
        """Test the help command lists the registered commands."""
        processor = make_processor(driver, identity, version_plugin())

        await processor.process(new_message("<@BOT> help"))

        text = driver.calls_of("send")[0][2]
        assert text.startswith("I'm `youppi` (engine version `1.0.0`)")
        assert "\t• `version` - Reply I'm X, version 1.0.0" in text

    async def test_empty_answer_is_dropped(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test an empty answer produces no outbound call."""
        plugin = (
            PluginBuilder("quiet")
            .with_hear_action(new_hear_action().with_answerer(lambda m: Answer(text="")).build())
            .build()
        )
        processor = make_processor(driver, identity, plugin)

        await processor.process(new_message("anything"))

        assert driver.calls == []

    async def test_content_blocks_only_answer_is_sent(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test an answer with blocks but no text is sent."""
        blocks = [{"type": "section", "text": {"type": "mrkdwn", "text": "hi"}}]
        plugin = (
            PluginBuilder("blocks")
            .with_hear_action(
                new_hear_action().with_answerer(lambda m: Answer(content_blocks=blocks)).build()
            )
            .build()
        )
        processor = make_processor(driver, identity, plugin)

        await processor.process(new_message("anything"))

        assert len(driver.calls_of("send")) == 1

    async def test_ephemeral_answer(self, driver: RecordingDriver, identity: SelfIdentity) -> None:
        """Test ephemeral answers go to one user and aren't recorded."""
        plugin = text_command("secret", "secret", "psst", options=[answer_ephemeral("U1")])
        processor = make_processor(driver, identity, plugin)

        await processor.process(new_message("<@BOT> secret"))

        assert driver.calls == [("send_ephemeral", "C1", "U1", "psst", None)]
        assert processor.tracker.get(ORIGIN) is None

    async def test_async_answerer(self, driver: RecordingDriver, identity: SelfIdentity) -> None:
        """Test coroutine answerers are awaited."""

        async def answer(m: IncomingMessage) -> Answer:
            return Answer(text="awaited")

        plugin = (
            PluginBuilder("async")
            .with_command(new_command().with_answerer(answer).build())
            .build()
        )
        processor = make_processor(driver, identity, plugin)

        await processor.process(new_message("<@BOT> anything"))

        assert driver.calls_of("send")[0][2] == "awaited"

    async def test_failing_action_does_not_stop_others(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test an action raising is skipped and the next one still answers."""

        def explode(m: IncomingMessage) -> Answer:
            raise RuntimeError("boom")

        plugin = (
            PluginBuilder("mixed")
            .with_hear_action(new_hear_action().with_answerer(explode).build())
            .with_hear_action(
                new_hear_action().with_answerer(lambda m: Answer(text="fine")).build()
            )
            .build()
        )
        processor = make_processor(driver, identity, plugin)

        await processor.process(new_message("anything"))

        assert [c[2] for c in driver.calls_of("send")] == ["fine"]

    async def test_failing_matcher_is_skipped(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test a matcher raising is treated as no match."""

        def explode(m: IncomingMessage) -> bool:
            raise ValueError("bad matcher")

        plugin = (
            PluginBuilder("broken")
            .with_hear_action(new_hear_action().with_matcher(explode).build())
            .build()
        )
        processor = make_processor(driver, identity, plugin)

        await processor.process(new_message("anything"))

        assert driver.calls == []


class TestThreading:
    """Where replies are posted."""

    async def test_threaded_replies_default(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test the threaded replies default puts replies in the message's thread."""
        processor = make_processor(
            driver, identity, version_plugin(), defaults=ReplyDefaults(True, True)
        )

        await processor.process(new_message("<@BOT> version", ts="100.0"))

        _, _, _, thread_ts, broadcast, _ = driver.calls[0]
        assert (thread_ts, broadcast) == ("100.0", True)

    async def test_direct_messages_are_not_threaded(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test direct message replies stay unthreaded whatever the default."""
        processor = make_processor(
            driver, identity, version_plugin(), defaults=ReplyDefaults(True, True)
        )

        await processor.process(new_message("version", channel="D1"))

        assert driver.calls[0][3] is None

    async def test_message_in_thread_is_answered_in_thread(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test a message inside a thread gets its reply in that thread."""
        processor = make_processor(
            driver, identity, version_plugin(), defaults=ReplyDefaults(False, False)
        )

        await processor.process(new_message("<@BOT> version", ts="100.0", thread_ts="50.0"))

        _, _, _, thread_ts, broadcast, _ = driver.calls[0]
        assert (thread_ts, broadcast) == ("50.0", False)

    async def test_answer_option_beats_default(
        self, driver: RecordingDriver, identity: SelfIdentity
    ) -> None:
        """Test an explicit answer option overrides the configured defaults."""
        plugin = text_command(
            "threads", "thread", "in thread", options=[answer_in_thread_without_broadcast()]
        )
        processor = make_processor(driver, identity, plugin, defaults=ReplyDefaults(False, True))

        await processor.process(new_message("<@BOT> thread", ts="100.0"))

        _, _, _, thread_ts, broadcast, _ = driver.calls[0]
        assert (thread_ts, broadcast) == ("100.0", False)


class TestSkippedEvents:
    """Events the processor doesn't act on."""

    @pytest.mark.parametrize(
        "event",
        [
            MessageEvent(channel_id="", timestamp="1.0", text="<@BOT> version"),
            MessageEvent(channel_id="C1", timestamp="", text="<@BOT> version"),
            MessageEvent(channel_id="C1", timestamp="1.0", subtype="message_changed"),
            MessageEvent(channel_id="C1", timestamp="1.0", subtype="message_deleted"),
            MessageEvent(channel_id="C1", timestamp="1.0", text="<@BOT> version", reply_to=3),
            MessageEvent(channel_id="C1", timestamp="1.0", subtype="message_replied"),
        ],
    )
    async def test_no_outbound_call(
        self, driver: RecordingDriver, identity: SelfIdentity, event: MessageEvent
    ) -> None:
        """Test malformed and ignored events are skipped."""
        processor = make_processor(driver, identity, version_plugin())

        await processor.process(event)

        assert driver.calls == []


class TestProcessingMetrics:
    """Metrics recorded while processing."""

    async def test_counts_by_type(self, driver: RecordingDriver, identity: SelfIdentity) -> None:
        """Test processed messages are counted by type and answers by plugin."""
        metrics = MetricsRegistry()
        processor = make_processor(driver, identity, version_plugin(), metrics=metrics)

        await processor.process(new_message("<@BOT> version"))
        await processor.process(edited_message("<@BOT> version"))
        await processor.process(deleted_message())

        for kind in ("new", "edit", "delete"):
            assert metrics.messages_processed.get({"type": kind}) == 1
        assert metrics.plugin_answers.get({"plugin": "versioner"}) == 2
        assert metrics.processing_duration.get_stats({"type": "new"})["count"] == 1
