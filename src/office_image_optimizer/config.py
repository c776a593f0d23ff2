"""Configuration schema for the image optimizer."""

from pydantic import BaseModel, Field, ConfigDict
from .common import LoggingConfig


DEFAULT_MAX_DIMENSION = 800


class OptimizerConfig(BaseModel):
    """Configuration for a single optimization run."""

    model_config = ConfigDict(extra='forbid', frozen=True)

    max_dimension: int = Field(
        default=DEFAULT_MAX_DIMENSION,
        ge=1,
        description="Maximum width and height (pixels) of images left untouched"
    )
    images_dir: str = Field(
        default="Pictures",
        min_length=1,
        description="Archive directory holding the raster images to optimize"
    )
    allow_unsafe_paths: bool = Field(
        default=False,
        description="Extract entries whose paths escape the working directory"
    )
    reproducible: bool = Field(
        default=True,
        description="Write fixed entry timestamps so identical input gives identical output"
    )


class AppConfig(BaseModel):
    """Root configuration."""

    model_config = ConfigDict(extra='forbid', frozen=True)

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    optimizer: OptimizerConfig = Field(default_factory=OptimizerConfig)
