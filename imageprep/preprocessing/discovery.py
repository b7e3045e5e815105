"""
File discovery for batch preprocessing.

Walks an input tree lazily and yields regular files. Format filtering is
left to the caller via ``has_extension``.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator, Union

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({"png", "jpg", "jpeg"})


def _log_walk_error(error: OSError) -> None:
    logger.debug(f"Skipping unreadable entry {error.filename}: {error}")


def iter_files(root: Union[str, Path]) -> Iterator[Path]:
    """
    Recursively yield regular files under ``root``.

    Entries that cannot be read (permission denied, broken symlinks, files
    removed mid-walk) are skipped rather than aborting the walk.

    Args:
        root: Directory to walk.

    Yields:
        Path of each regular file, in walk order.
    """
    for dirpath, dirnames, filenames in os.walk(root, onerror=_log_walk_error):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath) / name
            try:
                if path.is_file():
                    yield path
            except OSError as e:
                logger.debug(f"Skipping {path}: {e}")


def has_extension(path: Union[str, Path], extensions: Iterable[str] = IMAGE_EXTENSIONS) -> bool:
    """Case-insensitive extension check. ``extensions`` are given without dots."""
    suffix = Path(path).suffix.lower().lstrip(".")
    return bool(suffix) and suffix in {ext.lower().lstrip(".") for ext in extensions}
