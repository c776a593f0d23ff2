"""Downscaling of oversized raster images using Pillow."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from PIL import Image

from .common import CorruptedFileError, UnsupportedFormatError
from .config import OptimizerConfig

ALPHA_MODES = frozenset({"RGBA", "RGBa", "LA", "La", "PA"})


@dataclass(frozen=True)
class RasterImage:
    """Dimensions and alpha information of a decoded image."""
    width: int
    height: int
    has_alpha: bool
    format: Optional[str] = None  # Pillow format name, e.g. "PNG"

    @classmethod
    def from_image(cls, img: Image.Image) -> "RasterImage":
        has_alpha = img.mode in ALPHA_MODES or "transparency" in img.info
        return cls(width=img.width, height=img.height, has_alpha=has_alpha, format=img.format)

    def fits(self, max_dimension: int) -> bool:
        return self.width <= max_dimension and self.height <= max_dimension

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass
class OptimizationSummary:
    """Totals over all images examined in one run."""
    examined: int = 0
    resized: int = 0
    bytes_before: int = 0
    bytes_after: int = 0

    @property
    def bytes_saved(self) -> int:
        return self.bytes_before - self.bytes_after


def scaled_size(width: int, height: int, max_dimension: int) -> Tuple[int, int]:
    """Compute the size of an image whose longer side becomes ``max_dimension``.

    The longer side drives the scale; on a tie the height drives. The shorter
    side is truncated, never below one pixel.

    Examples:
        >>> scaled_size(1600, 1200, 800)
        (800, 600)
        >>> scaled_size(1200, 1600, 800)
        (600, 800)
    """
    if width > height:
        return max_dimension, max(1, height * max_dimension // width)
    return max(1, width * max_dimension // height), max_dimension


def encoder_format(path: Path) -> str:
    """Map the file extension of ``path`` to a Pillow encoder name.

    Raises:
        UnsupportedFormatError: If Pillow cannot write that extension
    """
    extension = path.suffix.lower()
    format_name = Image.registered_extensions().get(extension)
    if format_name is None or format_name not in Image.SAVE:
        raise UnsupportedFormatError(
            f"No image encoder for extension '{path.suffix}'", file_path=str(path)
        )
    return format_name


def decode_image(path: Path) -> Image.Image:
    """Open and fully decode ``path``.

    Raises:
        CorruptedFileError: If Pillow cannot decode the file
    """
    try:
        img = Image.open(path)
    except (OSError, SyntaxError, ValueError) as e:
        raise CorruptedFileError(f"Cannot decode image {path}: {e}", file_path=str(path)) from e

    try:
        img.load()
    except (OSError, SyntaxError, ValueError) as e:
        img.close()
        raise CorruptedFileError(f"Cannot decode image {path}: {e}", file_path=str(path)) from e
    return img


class ImageOptimizer:
    """Downscales the images of an extracted document in place."""

    def __init__(self, config: OptimizerConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    def optimize_archive(self, root: Path) -> OptimizationSummary:
        """Optimize every file directly inside the images directory of ``root``.

        Subdirectories of the images directory are not descended into.
        """
        summary = OptimizationSummary()
        images_dir = Path(root) / self.config.images_dir

        if not images_dir.is_dir():
            self.logger.debug(f"No {self.config.images_dir} directory in {root}")
            return summary

        for path in sorted(images_dir.iterdir()):
            if not path.is_file():
                continue

            size_before = path.stat().st_size
            resized = self.optimize_image(path)

            summary.examined += 1
            summary.bytes_before += size_before
            summary.bytes_after += path.stat().st_size
            if resized:
                summary.resized += 1

        self.logger.info(
            f"Optimized {summary.resized}/{summary.examined} image(s), "
            f"saved {summary.bytes_saved} bytes"
        )
        return summary

    def optimize_image(self, path: Path) -> bool:
        """Downscale ``path`` in place if either side exceeds the limit.

        Images within the limit are not re-encoded, so their bytes stay
        identical.

        Returns:
            True if the file was rewritten
        """
        path = Path(path)
        max_dimension = self.config.max_dimension

        with decode_image(path) as img:
            raster = RasterImage.from_image(img)
            if raster.fits(max_dimension):
                self.logger.debug(f"Keeping {path.name} ({raster})")
                return False

            format_name = encoder_format(path)
            new_size = scaled_size(raster.width, raster.height, max_dimension)
            resized = self._prepare(img, raster).resize(new_size, Image.Resampling.BILINEAR)

            params: Dict[str, Any] = {}
            icc_profile = img.info.get("icc_profile")
            if icc_profile:
                params["icc_profile"] = icc_profile

        resized.save(path, format=format_name, **params)
        self.logger.info(
            f"Resized {path.name} from {raster} to {new_size[0]}x{new_size[1]}"
        )
        return True

    @staticmethod
    def _prepare(img: Image.Image, raster: RasterImage) -> Image.Image:
        """Convert ``img`` into a mode bilinear resampling can work on.

        Transparent images go to RGBA so the alpha channel is copied through
        unchanged instead of being flattened onto a background.
        """
        if raster.has_alpha:
            return img.convert("RGBA")
        if img.mode in ("1", "P"):
            return img.convert("RGB")
        return img
