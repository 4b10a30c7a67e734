"""File upload options."""

from __future__ import annotations

from dataclasses import replace

from ..interfaces.services import RawFileUploader
from ..models.message import IncomingMessage
from ..models.upload import FileUploadParams, UploadOption


def upload_in_thread(message: IncomingMessage) -> UploadOption:
    """Upload in the thread of ``message`` when it's in an existing thread."""

    def option(params: FileUploadParams) -> FileUploadParams:
        if message.in_thread:
            return replace(params, thread_timestamp=message.thread_timestamp)
        return params

    return option


def upload_in_channels(*channel_ids: str) -> UploadOption:
    def option(params: FileUploadParams) -> FileUploadParams:
        return replace(params, channels=list(channel_ids))

    return option


class OptionsFileUploader:
    """Applies upload options in order, then hands over to the raw uploader."""

    def __init__(self, uploader: RawFileUploader) -> None:
        self._uploader = uploader

    async def upload_file(self, params: FileUploadParams, *options: UploadOption) -> None:
        for option in options:
            params = option(params)
        await self._uploader.upload(params)
