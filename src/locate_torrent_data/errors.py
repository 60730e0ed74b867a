"""Error types raised by index tasks and manifest handling."""

from __future__ import annotations


class LocateError(Exception):
    """Base class for all locate_torrent_data failures."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ManifestError(LocateError):
    """Raised when a manifest cannot be read, decoded or validated."""


class TableFormatError(LocateError):
    """Raised when a persisted file table contains a malformed line."""

    def __init__(self, reason: str, line_number: int) -> None:
        super().__init__(reason)
        self.line_number = line_number


class ScanError(LocateError):
    """Raised when a scan root cannot be read."""

    def __init__(self, reason: str, path: str) -> None:
        super().__init__(reason)
        self.path = path


class ConsistencyError(LocateError):
    """Raised when two pieces resolve one manifest file to different locations.

    This indicates either a hash collision or a file table holding stale
    duplicate entries. It is never recovered from.
    """

    def __init__(self, file_path: str, existing: str, conflicting: str) -> None:
        super().__init__(
            f"Manifest file '{file_path}' resolved to both '{existing}' and '{conflicting}'."
        )
        self.file_path = file_path
        self.existing = existing
        self.conflicting = conflicting
