"""Parameters of a file upload."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class FileUploadParams:
    """What to upload and where.

    Exactly one of ``content`` or ``file_path`` is expected to be set.
    """

    channels: list[str] = field(default_factory=list)
    content: str | bytes | None = None
    file_path: Path | None = None
    filename: str | None = None
    filetype: str | None = None
    title: str | None = None
    initial_comment: str | None = None
    thread_timestamp: str | None = None


# Tweaks the parameters of an upload before it's sent
UploadOption = Callable[[FileUploadParams], FileUploadParams]
