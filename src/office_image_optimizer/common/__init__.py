"""Common utilities shared by the optimizer modules."""

from .config import ConfigLoader
from .logging import setup_logging, LogContext
from .logging_config import LoggingConfig
from .errors import (
    OptimizerError, FileProcessingError, CorruptedFileError, UnsupportedFormatError
)
from .path_utils import is_within

__all__ = [
    'ConfigLoader',
    'LoggingConfig',
    'setup_logging',
    'LogContext',
    'OptimizerError',
    'FileProcessingError',
    'CorruptedFileError',
    'UnsupportedFormatError',
    'is_within',
]
