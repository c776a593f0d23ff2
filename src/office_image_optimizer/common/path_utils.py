"""Path utilities for working-tree containment checks."""

from pathlib import Path


def is_within(root: Path, candidate: Path) -> bool:
    """Check whether ``candidate`` resolves to a location inside ``root``.

    Args:
        root: Base directory
        candidate: Path to check (may contain ``..`` segments)

    Returns:
        True if the resolved candidate is ``root`` or one of its descendants
    """
    return candidate.resolve().is_relative_to(root.resolve())
