"""Exception hierarchy shared across the engine."""

from __future__ import annotations


class SlackscotError(Exception):
    """Base exception for all slackscot errors."""


class ConfigurationError(SlackscotError):
    """Invalid or missing configuration. Raised at startup and aborts boot."""


class PartitionCountError(SlackscotError, ValueError):
    """Partition count is not a power of two.

    Attributes:
        partition_count: The rejected partition count.
    """

    def __init__(self, partition_count: int) -> None:
        super().__init__(
            "A partition router can only work with a partition count that is a power "
            f"of two but was [{partition_count}]"
        )
        self.partition_count = partition_count


class ScheduleError(SlackscotError, ValueError):
    """Schedule definition can't be turned into a job."""


class RegistrationError(SlackscotError):
    """Plugin registration attempted after the registry was sealed."""


class UserNotFoundError(SlackscotError, LookupError):
    """User directory has no profile for the requested id.

    Attributes:
        user_id: The id that was looked up.
    """

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User [{user_id}] not found")
        self.user_id = user_id


class MalformedEventError(SlackscotError, ValueError):
    """Incoming event payload lacks the fields needed to process it."""
