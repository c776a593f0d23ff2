"""Shrink oversized images inside LibreOffice / OpenOffice documents."""

__version__ = "0.1.0"

from .archive import ArchiveEntry, ArchiveReader, open_archive
from .config import AppConfig, OptimizerConfig
from .extractor import ExtractionSummary, extract
from .images import ImageOptimizer, OptimizationSummary, RasterImage, scaled_size
from .packer import pack
from .pipeline import DocumentOptimizer, PipelineResult, default_output_path

__all__ = [
    'ArchiveEntry',
    'ArchiveReader',
    'open_archive',
    'AppConfig',
    'OptimizerConfig',
    'ExtractionSummary',
    'extract',
    'ImageOptimizer',
    'OptimizationSummary',
    'RasterImage',
    'scaled_size',
    'pack',
    'DocumentOptimizer',
    'PipelineResult',
    'default_output_path',
]
