"""Controller discovery: find controller assets under a project directory."""

from __future__ import annotations

import fnmatch
import logging
import os
from collections.abc import Iterable, Iterator
from pathlib import Path

from controller_cleaner.settings import get_controller_glob, get_exclude_dirs

logger = logging.getLogger(__name__)


def iter_controllers(
    root: Path,
    pattern: str | None = None,
    exclude_dirs: Iterable[str] | None = None,
) -> Iterator[Path]:
    """Yield controller files below ``root``.

    Excluded directories are pruned by name at any depth.

    Args:
        root: Directory to search (usually a Unity project or its Assets/).
        pattern: Filename pattern (default from settings, ``*.controller``).
        exclude_dirs: Directory names to skip (default from settings).
    """
    pattern = pattern or get_controller_glob()
    excluded = set(exclude_dirs) if exclude_dirs is not None else get_exclude_dirs()

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in excluded)
        for filename in sorted(filenames):
            if fnmatch.fnmatch(filename, pattern):
                yield Path(dirpath) / filename


def find_controllers(
    root: str | os.PathLike[str],
    pattern: str | None = None,
    exclude_dirs: Iterable[str] | None = None,
) -> list[Path]:
    """Return all controller files below ``root`` in a stable order."""
    root = Path(root)
    if not root.is_dir():
        raise NotADirectoryError(f"'{root}' is not a directory")
    controllers = list(iter_controllers(root, pattern, exclude_dirs))
    logger.debug(f"Found {len(controllers)} controllers under {root}")
    return controllers
