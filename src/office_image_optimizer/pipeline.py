"""Extract, optimize and repack one document."""

import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .archive import open_archive
from .common import LogContext
from .config import OptimizerConfig
from .extractor import ExtractionSummary, extract
from .images import ImageOptimizer, OptimizationSummary
from .packer import pack

WORKING_TREE_PREFIX = "office-image-optimizer-"


def default_output_path(in_file: Path) -> Path:
    """Return ``<stem>_optimized<suffix>`` next to ``in_file``.

    >>> str(default_output_path(Path("report.odt")))
    'report_optimized.odt'
    """
    in_file = Path(in_file)
    return in_file.with_name(f"{in_file.stem}_optimized{in_file.suffix}")


@dataclass
class PipelineResult:
    """What one run did."""
    in_file: Path
    out_file: Path
    extraction: ExtractionSummary
    optimization: OptimizationSummary
    entries_written: int


class DocumentOptimizer:
    """Runs extraction, image optimization and packing for a document."""

    def __init__(self, config: Optional[OptimizerConfig] = None, logger: Optional[logging.Logger] = None):
        self.config = config or OptimizerConfig()
        self.logger = logger or logging.getLogger(__name__)

    def optimize_file(self, in_file: Path, out_file: Optional[Path] = None) -> PipelineResult:
        """Write an optimized copy of ``in_file`` to ``out_file``.

        The archive is packed into a temporary file first and moved into
        place only after packing succeeded, so ``out_file`` may equal
        ``in_file`` and a failed run leaves no partial output.

        Args:
            in_file: Source document
            out_file: Destination; defaults to ``default_output_path(in_file)``

        Returns:
            Summary of the run

        Raises:
            FileNotFoundError: If ``in_file`` does not exist
            OptimizerError: If any phase fails
        """
        in_file = Path(in_file)
        out_file = Path(out_file) if out_file is not None else default_output_path(in_file)

        if not in_file.is_file():
            raise FileNotFoundError(f"Input file not found: {in_file}")

        self.logger.info(f"Optimizing {in_file} -> {out_file}")

        with tempfile.TemporaryDirectory(prefix=WORKING_TREE_PREFIX) as tmp:
            tree = Path(tmp) / "tree"
            tree.mkdir()
            packed = Path(tmp) / "packed.zip"

            with self._phase(in_file, "extract"):
                with open(in_file, 'rb') as stream, open_archive(stream, self.logger) as reader:
                    extraction = extract(
                        reader,
                        tree,
                        allow_unsafe_paths=self.config.allow_unsafe_paths,
                        logger=self.logger,
                    )

            with self._phase(in_file, "optimize"):
                optimization = ImageOptimizer(self.config, self.logger).optimize_archive(tree)

            with self._phase(in_file, "pack"):
                with open(packed, 'wb') as out_stream:
                    written = pack(
                        tree,
                        out_stream,
                        reproducible=self.config.reproducible,
                        directories=extraction.directory_names,
                        logger=self.logger,
                    )
                out_file.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(packed), str(out_file))

        self.logger.info(
            f"Wrote {out_file} ({written} entries, {optimization.resized} image(s) resized)"
        )
        return PipelineResult(
            in_file=in_file,
            out_file=out_file,
            extraction=extraction,
            optimization=optimization,
            entries_written=written,
        )

    def _phase(self, in_file: Path, phase: str) -> "_Phase":
        return _Phase(self.logger, in_file, phase)


class _Phase:
    """Tags log records with the file and phase.

    A failure is logged here, with its traceback, while the phase fields are
    still attached; callers only need to report the outcome.
    """

    def __init__(self, logger: logging.Logger, in_file: Path, phase: str):
        self.logger = logger
        self.in_file = in_file
        self.phase = phase
        self._context = LogContext(logger, file=str(in_file), phase=phase)

    def __enter__(self) -> "_Phase":
        self._context.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_val is not None:
            self.logger.error(
                f"Phase '{self.phase}' failed for {self.in_file}: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb),
            )
        self._context.__exit__(exc_type, exc_val, exc_tb)
