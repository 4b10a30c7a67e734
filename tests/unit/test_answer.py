"""Tests for answers and answer options."""

from __future__ import annotations

from itertools import permutations

from slackscot.models.answer import (
    BROADCAST_OPT,
    EPHEMERAL_OPT,
    THREAD_TIMESTAMP_OPT,
    THREADED_REPLY_OPT,
    Answer,
    AnswerOptions,
    answer_ephemeral,
    answer_in_existing_thread,
    answer_in_thread,
    answer_in_thread_with_broadcast,
    answer_in_thread_without_broadcast,
    answer_option,
    answer_without_threading,
    apply_answer_options,
    merge_answer_options,
)


class TestOptionHelpers:
    """Tests for the option helper functions."""

    def test_threading_options(self) -> None:
        """Test the threading helpers set their keys."""
        assert answer_in_thread() == {THREADED_REPLY_OPT: "true"}
        assert answer_without_threading() == {THREADED_REPLY_OPT: "false"}
        assert answer_in_thread_with_broadcast()[BROADCAST_OPT] == "true"
        assert answer_in_thread_without_broadcast()[BROADCAST_OPT] == "false"

    def test_existing_thread(self) -> None:
        """Test replying in an existing thread also enables threading."""
        option = answer_in_existing_thread("123.456")

        assert option == {THREADED_REPLY_OPT: "true", THREAD_TIMESTAMP_OPT: "123.456"}

    def test_ephemeral(self) -> None:
        """Test the ephemeral option names the user."""
        assert answer_ephemeral("U1") == {EPHEMERAL_OPT: "U1"}


class TestApplyAnswerOptions:
    """Tests for merging options into AnswerOptions."""

    def test_no_options(self) -> None:
        """Test no options leave every field unset."""
        assert apply_answer_options() == AnswerOptions()

    def test_resolved_fields(self) -> None:
        """Test known keys are parsed into typed fields."""
        options = apply_answer_options(
            answer_in_thread_with_broadcast(),
            answer_in_existing_thread("1.0"),
            answer_ephemeral("U1"),
        )

        assert options.threaded_reply is True
        assert options.broadcast is True
        assert options.existing_thread_timestamp == "1.0"
        assert options.ephemeral_to_user == "U1"
        assert options.extra == {}

    def test_later_values_override(self) -> None:
        """Test the last value for a key wins."""
        options = apply_answer_options(answer_in_thread(), answer_without_threading())

        assert options.threaded_reply is False

    def test_unknown_options_pass_through(self) -> None:
        """Test unknown keys are kept in extra."""
        options = apply_answer_options(answer_option("unfurl", "false"), answer_in_thread())

        assert options.extra == {"unfurl": "false"}
        assert options.threaded_reply is True

    def test_order_independent_for_distinct_keys(self) -> None:
        """Test options with distinct keys give the same result in any order."""
        opts = [
            answer_in_thread_without_broadcast(),
            answer_ephemeral("U1"),
            answer_option("unfurl", "false"),
            {THREAD_TIMESTAMP_OPT: "9.0"},
        ]

        results = {
            tuple(sorted(merge_answer_options(*p).items())) for p in permutations(opts)
        }

        assert len(results) == 1


class TestAnswer:
    """Tests for Answer."""

    def test_empty(self) -> None:
        """Test an answer without text or blocks is empty."""
        assert Answer().is_empty
        assert Answer(text="", content_blocks=[]).is_empty
        assert not Answer(text="hi").is_empty
        assert not Answer(content_blocks=[{"type": "divider"}]).is_empty

    def test_resolve_options(self) -> None:
        """Test the answer's options come before extra ones."""
        answer = Answer(text="hi", options=[answer_in_thread()])

        options = answer.resolve_options(answer_without_threading())

        assert options.threaded_reply is False
