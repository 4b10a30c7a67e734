"""Tests for connection retry policies."""

import aiohttp
import pytest

from slackscot.utils.retry import create_retry


class TestCreateRetry:
    """Tests for create_retry."""

    async def test_retries_transient_errors(self) -> None:
        """Test transient connection errors are retried until success."""
        attempts = []

        @create_retry(max_attempts=3, min_wait=0, max_wait=0)
        async def connect() -> str:
            attempts.append(1)
            if len(attempts) < 3:
                raise aiohttp.ClientConnectionError("reset")
            return "connected"

        assert await connect() == "connected"
        assert len(attempts) == 3

    async def test_gives_up_after_max_attempts(self) -> None:
        """Test the last error is raised once attempts run out."""
        attempts = []

        @create_retry(max_attempts=2, min_wait=0, max_wait=0)
        async def connect() -> None:
            attempts.append(1)
            raise TimeoutError("slow")

        with pytest.raises(TimeoutError):
            await connect()
        assert len(attempts) == 2

    async def test_other_errors_are_not_retried(self) -> None:
        """Test errors that aren't transient fail immediately."""
        attempts = []

        @create_retry(max_attempts=3, min_wait=0, max_wait=0)
        async def connect() -> None:
            attempts.append(1)
            raise ValueError("bad token")

        with pytest.raises(ValueError):
            await connect()
        assert len(attempts) == 1
