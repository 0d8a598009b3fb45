"""Exceptions raised across the batch pipeline."""

from __future__ import annotations


class ImageBatchError(Exception):
    """Base class for all service errors."""


class FetchError(ImageBatchError):
    """An image reference could not be read or downloaded."""

    def __init__(self, reference: str, reason: str) -> None:
        super().__init__(reason)
        self.reference = reference
        self.reason = reason


class TransformError(ImageBatchError):
    """Image bytes could not be decoded, resized or written."""

    def __init__(self, reason: str, output_path: str | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.output_path = output_path


class RowParseError(ImageBatchError):
    """A table row lacks its image references and is skipped."""

    def __init__(self, position: int, reason: str) -> None:
        super().__init__(f"row {position}: {reason}")
        self.position = position
        self.reason = reason


class JobEmptyError(ImageBatchError):
    """No row produced a result, so there is no output table."""

    def __init__(self, handle: str) -> None:
        super().__init__(f"job {handle} produced no rows")
        self.handle = handle


class JobNotFoundError(ImageBatchError):
    def __init__(self, handle: str) -> None:
        super().__init__(f"unknown job {handle}")
        self.handle = handle


class JobExistsError(ImageBatchError):
    def __init__(self, handle: str) -> None:
        super().__init__(f"job {handle} is already registered")
        self.handle = handle
