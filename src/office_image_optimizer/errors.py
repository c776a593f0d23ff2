"""Archive-specific errors."""

from .common import OptimizerError


class ArchiveError(OptimizerError):
    """Archive processing failed."""
    pass


class ExtractionError(ArchiveError):
    """Failed to extract archive."""
    pass


class CorruptedArchiveError(ArchiveError):
    """Archive is corrupted."""
    pass


class UnsupportedArchiveError(ArchiveError):
    """Archive format is not supported."""
    pass
