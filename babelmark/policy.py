"""Failure collection for concurrent translation runs."""

from __future__ import annotations

import logging
import threading
from typing import List, Optional

from .errors import ErrorCategory, ErrorRecord, categorise

logger = logging.getLogger(__name__)


class ErrorPolicy:
    """Collects labelled failures so that one unit never stops its siblings."""

    def __init__(self) -> None:
        self.records: List[ErrorRecord] = []
        self._lock = threading.Lock()

    def handle_error(
        self,
        category: ErrorCategory,
        message: str,
        *,
        details: Optional[str] = None,
        source: Optional[str] = None,
        language: Optional[str] = None,
    ) -> ErrorRecord:
        """Record a failure and log it."""

        record = ErrorRecord(
            category=category,
            message=message,
            details=details,
            source=source,
            language=language,
        )
        with self._lock:
            self.records.append(record)
        logger.error(record.label())
        return record

    def handle_exception(
        self,
        exc: BaseException,
        *,
        source: Optional[str] = None,
        language: Optional[str] = None,
    ) -> ErrorRecord:
        cause = exc.__cause__
        return self.handle_error(
            categorise(exc),
            str(exc),
            details=str(cause) if cause else None,
            source=source,
            language=language,
        )

    @property
    def failed(self) -> bool:
        with self._lock:
            return bool(self.records)

    def snapshot(self) -> List[ErrorRecord]:
        with self._lock:
            return list(self.records)
