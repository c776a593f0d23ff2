"""Base error definitions for office_image_optimizer."""

from typing import Any, Dict


class OptimizerError(Exception):
    """Base exception for all office_image_optimizer errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context


class FileProcessingError(OptimizerError):
    """Base exception for file processing errors."""
    pass


class CorruptedFileError(FileProcessingError):
    """File is corrupted or cannot be decoded."""
    pass


class UnsupportedFormatError(FileProcessingError):
    """No codec is available for the file format."""
    pass
