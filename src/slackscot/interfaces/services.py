"""Capability contracts handed to plugins and implemented by adapters."""

from typing import Protocol

from ..models.message import MessageID, UserProfile
from ..models.upload import FileUploadParams, UploadOption


class UserDirectory(Protocol):
    """Remote user directory lookup."""

    async def fetch_user(self, user_id: str) -> UserProfile:
        """
        Load a user's profile from the remote service.

        Raises:
            UserNotFoundError: If no such user exists
        """
        ...


class UserInfoFinder(Protocol):
    """Look up user profiles by id."""

    async def get_user(self, user_id: str) -> UserProfile:
        """
        Return the user's profile.

        Raises:
            UserNotFoundError: If no such user exists
        """
        ...


class EmojiReactor(Protocol):
    """Add emoji reactions to messages."""

    async def add_reaction(self, name: str, item: MessageID) -> None:
        """
        Add a reaction to a message.

        Args:
            name: Reaction name without colons (e.g. "eyes")
            item: The message to react to
        """
        ...


class RawFileUploader(Protocol):
    """Upload files as described by fully resolved parameters."""

    async def upload(self, params: FileUploadParams) -> None: ...


class FileUploader(Protocol):
    """Upload files, with options applied to the parameters first."""

    async def upload_file(self, params: FileUploadParams, *options: UploadOption) -> None:
        """
        Upload a file.

        Args:
            params: Upload parameters
            options: Applied in order to ``params`` before uploading
                (e.g. ``upload_in_thread(message)``)
        """
        ...


class RealTimeSender(Protocol):
    """Send messages outside of a reaction to a user's message."""

    async def send_new_message(self, text: str, channel_id: str) -> MessageID:
        """
        Post a new message on a channel.

        Used by scheduled actions and other non-reactive sends.
        """
        ...
