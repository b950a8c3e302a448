"""Exceptions raised while reading or writing .qua files."""
from pathlib import Path


class QuaError(Exception):
    """Base class for all errors raised by qua_format."""


class QuaIOError(QuaError):
    """The chart file could not be opened, read or written.

    The underlying ``OSError`` is available as ``__cause__``.
    """

    def __init__(self, message: str, path: Path | str | None = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class QuaFormatError(QuaError):
    """The text is not valid YAML or does not fit the chart schema.

    ``location`` names the offending value (for example ``HitObjects[3].Lane``)
    when the failure comes from the schema rather than the YAML parser.
    """

    def __init__(self, message: str, location: str | None = None, path: Path | str | None = None):
        self.location = location
        self.reason = message
        self.path = Path(path) if path is not None else None
        if location:
            message = f"{location}: {message}"
        if self.path is not None:
            message = f"{self.path}: {message}"
        super().__init__(message)
