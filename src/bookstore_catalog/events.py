"""Structured log event names emitted by the catalog core and backend.

Pass as ``extra={"event": LogEvent.X}`` so JSON log lines can be filtered by
event without parsing the message text.
"""

from enum import Enum


class LogEvent(str, Enum):
    CREATION_STARTED = "creation_started"
    ISBN_CHECK_PERFORMED = "isbn_check_performed"
    STOCK_CHECK_PERFORMED = "stock_check_performed"
    VALIDATION_FAILED = "validation_failed"
    DB_OPERATION_STARTED = "db_operation_started"
    DB_OPERATION_COMPLETED = "db_operation_completed"
    CACHE_INVALIDATED = "cache_invalidated"
    CREATION_COMPLETED = "creation_completed"
    REQUEST_COMPLETED = "request_completed"
    REQUEST_FAILED = "request_failed"
