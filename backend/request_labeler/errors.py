"""Failure taxonomy for the labeling and archival pipeline."""
from __future__ import annotations


class LabelerError(Exception):
    """Base class for every error raised by request_labeler."""


class StoreError(LabelerError):
    """The shared store rejected or failed a command."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation


class StoreUnavailable(StoreError):
    """Connect, auth, timeout or transport fault against the shared store."""


class FileAccessDenied(LabelerError):
    """An archive or filter target could not be read or written."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class MalformedSnapshot(LabelerError):
    """A stored dependency snapshot is not a JSON list of paths."""

    def __init__(self, digest: str, message: str) -> None:
        super().__init__(f"snapshot {digest}: {message}")
        self.digest = digest
