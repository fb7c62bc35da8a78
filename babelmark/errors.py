"""Error definitions for the babelmark translator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class ErrorCategory(Enum):
    """Categorises failures reported at the end of a run."""

    CONFIGURATION = auto()
    FILE_IO = auto()
    FORMAT = auto()
    TRANSLATION = auto()
    OTHER = auto()


class BabelmarkError(Exception):
    """Base exception for all custom errors."""


class ConfigurationError(BabelmarkError):
    """Raised when configuration or credentials are missing or malformed."""


class TranslationFailure(BabelmarkError):
    """Raised when the provider errors or returns a mismatched response."""


class DocumentIOError(BabelmarkError):
    """Raised when a source cannot be read or an output cannot be written."""


class UnsupportedFileTypeError(BabelmarkError):
    """Raised when a given file extension is not supported."""


@dataclass
class ErrorRecord:
    """Stores context for a failed unit of work."""

    category: ErrorCategory
    message: str
    details: Optional[str] = None
    source: Optional[str] = None
    language: Optional[str] = None

    def label(self) -> str:
        if self.source and self.language:
            return f"{self.source} [{self.language}]: {self.message}"
        return self.message


def categorise(exc: BaseException) -> ErrorCategory:
    """Map an exception raised inside a unit to its reporting category."""

    if isinstance(exc, ConfigurationError):
        return ErrorCategory.CONFIGURATION
    if isinstance(exc, TranslationFailure):
        return ErrorCategory.TRANSLATION
    if isinstance(exc, (DocumentIOError, OSError)):
        return ErrorCategory.FILE_IO
    if isinstance(exc, (UnsupportedFileTypeError, ValueError)):
        return ErrorCategory.FORMAT
    return ErrorCategory.OTHER
