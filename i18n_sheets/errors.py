"""Error types raised by the sync operations.

Every error carries the stage it failed in so the CLI can report
``Failed to <stage> translations: ...`` without inspecting the cause.
"""
from typing import Optional


class SyncError(Exception):
    """Base class for all sync failures."""

    def __init__(self, stage: str, message: str, path: Optional[str] = None):
        self.stage = stage
        self.message = message
        self.path = path
        super().__init__(self.__str__())

    def __str__(self) -> str:
        if self.path:
            return f"Failed to {self.stage} translations: {self.message} (path: {self.path})"
        return f"Failed to {self.stage} translations: {self.message}"


class ConfigError(SyncError):
    """Missing or invalid configuration or credentials."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__("config", message, path)

    def __str__(self) -> str:
        if self.path:
            return f"Invalid configuration: {self.message} (path: {self.path})"
        return f"Invalid configuration: {self.message}"


class FileReadError(SyncError):
    """A locale/domain file is missing, not UTF-8, or not a JSON object."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__("read", message, path)


class TransportError(SyncError):
    """The table store call failed."""


class WriteError(SyncError):
    """A local file or directory could not be written during download."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__("download", message, path)


class TableDataError(SyncError):
    """The fetched table cannot be turned back into translation trees."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__("download", message, path)
