from __future__ import annotations

from typing import Optional


class NotebookError(Exception):
    """Base class for every error raised by knitnb."""


class ParseError(NotebookError):
    """The notebook bytes are not valid JSON."""


class EncodingError(NotebookError):
    """A string could not be written as UTF-8."""


class ConfigError(NotebookError):
    """An option name or config file is invalid."""


class ValidationError(NotebookError):
    """The notebook does not follow the document schema.

    index: 1-based position of the offending body cell, or None when the
    problem concerns the whole document.
    field: name of the offending field, when there is one.
    """

    def __init__(
        self, message: str, index: Optional[int] = None, field: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.index = index
        self.field = field


class EngineError(NotebookError):
    """The rendering engine failed on a cell."""

    def __init__(self, message: str, label: Optional[str] = None):
        super().__init__(message)
        self.label = label
