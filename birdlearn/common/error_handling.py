"""
Error Handling for birdlearn

This module defines the exception hierarchy raised by the scheduling core and
the mastery stores, a structured ``ErrorInfo`` record for reporting them to
the web layer, and helpers to convert and log arbitrary exceptions.

The matcher never raises; every error here comes from the scheduler, the
store, or argument validation.
"""

import json
import logging
import traceback
from enum import Enum
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for errors"""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


_SEVERITY_LEVELS = {
    ErrorSeverity.DEBUG: logging.DEBUG,
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


def severity_level(severity: ErrorSeverity) -> int:
    """Logging level for an error severity."""
    return _SEVERITY_LEVELS[severity]


class ErrorCode(Enum):
    """Error codes surfaced to callers"""
    UNKNOWN_ERROR = "unknown_error"
    VALIDATION_ERROR = "validation_error"

    # Scheduling errors
    EMPTY_COLLECTION = "empty_collection"
    ITEM_NOT_IN_COLLECTION = "item_not_in_collection"
    DUPLICATE_ITEM = "duplicate_item"

    # Persistence errors
    STORE_UNAVAILABLE = "store_unavailable"


class ErrorInfo(BaseModel):
    """Structured information about an error"""
    model_config = ConfigDict(use_enum_values=True)

    code: ErrorCode
    message: str
    timestamp: datetime = Field(default_factory=datetime.now)
    severity: ErrorSeverity = ErrorSeverity.ERROR
    details: Optional[Dict[str, Any]] = None
    exception_type: Optional[str] = None
    stack_trace: Optional[List[str]] = None
    context: Optional[Dict[str, Any]] = None

    @field_validator('stack_trace', mode='before')
    @classmethod
    def split_stack_trace(cls, v):
        if isinstance(v, str):
            return v.splitlines()
        return v


class BirdLearnError(Exception):
    """Base exception class for all birdlearn errors"""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.severity = severity
        self.details = details or {}
        self.cause = cause
        self.context = context or {}
        self.timestamp = datetime.now()

    def to_error_info(self, include_stack_trace: bool = False) -> ErrorInfo:
        """Convert the exception to an ErrorInfo object"""
        details = dict(self.details)
        if self.cause is not None:
            details["cause"] = {
                "type": type(self.cause).__name__,
                "message": str(self.cause)
            }

        stack_trace = None
        if include_stack_trace:
            stack_trace = traceback.format_exception(type(self), self, self.__traceback__)

        return ErrorInfo(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            severity=self.severity,
            details=details,
            exception_type=type(self).__name__,
            stack_trace=stack_trace,
            context=self.context
        )

    def to_dict(self, include_stack_trace: bool = False) -> Dict[str, Any]:
        """Convert the exception to a JSON-compatible dictionary"""
        return self.to_error_info(include_stack_trace).model_dump(mode="json")

    def to_json(self, include_stack_trace: bool = False) -> str:
        return json.dumps(self.to_dict(include_stack_trace))

    def __str__(self) -> str:
        base_str = f"{self.code.value}: {self.message}"
        if self.details:
            base_str += f" (details: {self.details})"
        if self.cause:
            base_str += f" caused by {type(self.cause).__name__}: {self.cause}"
        return base_str


class ValidationError(BirdLearnError):
    """Raised when an engine operation receives an invalid argument"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            severity=ErrorSeverity.WARNING,
            details=details,
            context=context
        )


class EmptyCollectionError(BirdLearnError):
    """
    Raised when a learner has nothing to practise.

    This is an expected condition: callers should show an onboarding prompt
    rather than an error page.
    """

    def __init__(self, learner_id: Any):
        super().__init__(
            message=f"Learner {learner_id} has no items in their collection",
            code=ErrorCode.EMPTY_COLLECTION,
            severity=ErrorSeverity.INFO,
            details={"learner_id": learner_id}
        )
        self.learner_id = learner_id


class ItemNotInCollectionError(BirdLearnError):
    """Raised when an operation names an item the learner does not own"""

    def __init__(self, learner_id: Any, item_id: Any):
        super().__init__(
            message=f"Item {item_id} is not in the collection of learner {learner_id}",
            code=ErrorCode.ITEM_NOT_IN_COLLECTION,
            severity=ErrorSeverity.ERROR,
            details={"learner_id": learner_id, "item_id": item_id}
        )
        self.learner_id = learner_id
        self.item_id = item_id


class DuplicateItemError(BirdLearnError):
    """Raised when an item is added to a collection that already holds it"""

    def __init__(self, learner_id: Any, item_id: Any):
        super().__init__(
            message=f"Item {item_id} is already in the collection of learner {learner_id}",
            code=ErrorCode.DUPLICATE_ITEM,
            severity=ErrorSeverity.WARNING,
            details={"learner_id": learner_id, "item_id": item_id}
        )
        self.learner_id = learner_id
        self.item_id = item_id


class StoreUnavailableError(BirdLearnError):
    """
    Raised when the mastery store fails during a read or write.

    Outcome updates that fail with this error have not been applied.
    Retrying is the caller's decision.
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        details = {}
        if operation is not None:
            details["operation"] = operation
        super().__init__(
            message=message,
            code=ErrorCode.STORE_UNAVAILABLE,
            severity=ErrorSeverity.ERROR,
            details=details,
            cause=cause,
            context=context
        )
        self.operation = operation


def convert_exception(
    exception: Exception,
    default_message: str = "An unexpected error occurred",
    context: Optional[Dict[str, Any]] = None
) -> BirdLearnError:
    """
    Convert any exception to a BirdLearnError.

    BirdLearnErrors pass through with ``context`` merged in; anything else is
    wrapped as an ``unknown_error`` with the original kept as ``cause``.
    """
    if isinstance(exception, BirdLearnError):
        if context:
            exception.context.update(context)
        return exception

    return BirdLearnError(
        message=str(exception) or default_message,
        code=ErrorCode.UNKNOWN_ERROR,
        severity=ErrorSeverity.ERROR,
        cause=exception,
        context=context
    )


def log_error(
    error: Union[BirdLearnError, Exception],
    target: Optional[logging.Logger] = None,
    include_stack_trace: bool = False,
    context: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log an error at the level matching its severity.

    Args:
        error: The error to log
        target: Logger to write to (module logger when omitted)
        include_stack_trace: Whether to attach exception info
        context: Additional context to include
    """
    error = convert_exception(error, context=context)

    message = f"[{error.code.value}] {error.message}"
    if error.context:
        context_str = ", ".join(f"{k}={v}" for k, v in error.context.items())
        message += f" (context: {context_str})"
    if error.cause:
        message += f" caused by {type(error.cause).__name__}: {error.cause}"

    (target or logger).log(
        severity_level(error.severity),
        message,
        exc_info=error if include_stack_trace else None
    )
