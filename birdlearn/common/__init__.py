"""
Common infrastructure shared by the birdlearn engines: logging, the error
hierarchy, and per-key locking.
"""

from birdlearn.common.logger import app_logger, get_logger, with_context, log_execution_time
from birdlearn.common.error_handling import (
    ErrorCode, ErrorSeverity, ErrorInfo, BirdLearnError, ValidationError,
    EmptyCollectionError, ItemNotInCollectionError, DuplicateItemError,
    StoreUnavailableError, convert_exception, log_error
)
from birdlearn.common.locking import KeyedLock

__all__ = [
    # Logging
    'app_logger', 'get_logger', 'with_context', 'log_execution_time',

    # Errors
    'ErrorCode', 'ErrorSeverity', 'ErrorInfo', 'BirdLearnError', 'ValidationError',
    'EmptyCollectionError', 'ItemNotInCollectionError', 'DuplicateItemError',
    'StoreUnavailableError', 'convert_exception', 'log_error',

    # Concurrency
    'KeyedLock',
]
