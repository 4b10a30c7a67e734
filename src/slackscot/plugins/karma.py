"""Karma plugin.

Keeps a score per thing: ``thing++`` raises it and ``thing--`` lowers it.
Scores are persisted through a ``StringStorer``. The namespaced commands
``karma top <n>`` and ``karma worst <n>`` list the extremes.
"""

from __future__ import annotations

import re

import structlog

from ..core.plugin import Plugin, PluginBuilder, new_command, new_hear_action
from ..models.answer import Answer, answer_ephemeral
from ..models.message import IncomingMessage
from ..store.base import StringStorer

log = structlog.get_logger()

KARMA_PLUGIN_NAME = "karma"

KARMA_PATTERN = re.compile(r"\s*(<@\w+>|\w+)(\+\+|--)")
TOP_PATTERN = re.compile(r"top\s+(\d+)", re.IGNORECASE)
WORST_PATTERN = re.compile(r"worst\s+(\d+)", re.IGNORECASE)

SELF_KARMA_REFUSAL = "Nice try but karma can only be given by others :wink:"


def format_list(pairs: list[tuple[str, int]]) -> str:
    """Render ``(thing, karma)`` pairs as an aligned code block."""
    width = max([5] + [len(str(value)) + 1 for _, value in pairs])
    lines = "".join(f"{value:<{width}}{thing}\n" for thing, value in pairs)
    return f"```{lines}```\n"


class Karma:
    """The karma plugin and the store it owns.

    The instance is the plugin's closer: ``close`` closes the store.

    Example:
        karma = Karma(InMemoryStore("karma"))
        builder.with_plugin(karma.plugin).with_closer(karma)
    """

    def __init__(self, storer: StringStorer) -> None:
        self._storer = storer
        self.plugin: Plugin = (
            PluginBuilder(KARMA_PLUGIN_NAME)
            .with_hear_action(
                new_hear_action()
                .with_matcher(lambda m: KARMA_PATTERN.search(m.normalized_text) is not None)
                .with_answerer(self.answer_karma)
                .with_usage("thing++ or thing--")
                .with_description("Keep track of karma")
                .build()
            )
            .with_command(
                new_command()
                .with_matcher(lambda m: TOP_PATTERN.match(m.normalized_text) is not None)
                .with_answerer(self.answer_top)
                .with_usage("top <howMany>")
                .with_description("Return the X top things ever")
                .build()
            )
            .with_command(
                new_command()
                .with_matcher(lambda m: WORST_PATTERN.match(m.normalized_text) is not None)
                .with_answerer(self.answer_worst)
                .with_usage("worst <howMany>")
                .with_description("Return the X worst things ever")
                .build()
            )
            .with_command_namespacing()
            .build()
        )

    def _current(self, thing: str) -> int:
        try:
            raw = self._storer.get_string(thing)
        except KeyError:
            return 0

        try:
            return int(raw)
        except ValueError:
            log.warning("karma_value_reset", thing=thing, value=raw)
            return 0

    def answer_karma(self, message: IncomingMessage) -> Answer | None:
        match = KARMA_PATTERN.search(message.normalized_text)
        if match is None:
            return None

        thing, operator = match.group(1), match.group(2)
        if thing in (message.user_id, f"<@{message.user_id}>"):
            return Answer(text=SELF_KARMA_REFUSAL, options=[answer_ephemeral(message.user_id)])

        karma = self._current(thing)
        if operator == "++":
            karma += 1
            fmt = "`%s` just gained a level (`%s`: %d)"
        else:
            karma -= 1
            fmt = "`%s` just lost a life (`%s`: %d)"

        try:
            self._storer.put_string(thing, str(karma))
        except Exception:
            log.exception("karma_persist_failed", thing=thing)

        if self.plugin.logger is not None:
            self.plugin.logger.debugf("Karma of [%s] is now [%d]", thing, karma)
        return Answer(text=fmt % (thing, thing, karma))

    def _ranked(self, count: int, worst: bool) -> list[tuple[str, int]]:
        scores = {thing: int(value) for thing, value in self._storer.scan().items()}
        if worst:
            ranked = sorted(scores.items(), key=lambda p: (p[1], p[0]))
        else:
            ranked = sorted(scores.items(), key=lambda p: (-p[1], p[0]))
        return ranked[:count]

    def _answer_ranking(
        self, message: IncomingMessage, pattern: re.Pattern[str], worst: bool
    ) -> Answer | None:
        match = pattern.match(message.normalized_text)
        if match is None:
            return None

        count = int(match.group(1))
        adjective = "worst" if worst else "top"
        try:
            pairs = self._ranked(count, worst)
        except Exception as e:
            log.warning("karma_scan_failed", error=str(e))
            return Answer(
                text=f"Sorry, I couldn't get the {adjective} [{count}] things for you. "
                f"If you must know, thing happened: {e}"
            )

        if worst:
            header = f"Here are the {count} worst things: \n"
        else:
            header = f"Here are the top {count} things: \n"
        return Answer(text=header + format_list(pairs))

    def answer_top(self, message: IncomingMessage) -> Answer | None:
        return self._answer_ranking(message, TOP_PATTERN, worst=False)

    def answer_worst(self, message: IncomingMessage) -> Answer | None:
        return self._answer_ranking(message, WORST_PATTERN, worst=True)

    def close(self) -> None:
        self._storer.close()


def new_karma(storer: StringStorer) -> tuple[Karma, Plugin]:
    """Create the karma plugin as a ``(closer, plugin)`` pair for ``BotBuilder``."""
    karma = Karma(storer)
    return karma, karma.plugin
