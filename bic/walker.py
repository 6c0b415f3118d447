from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator, List

from .classify import RESERVED_DIRS, is_image

logger = logging.getLogger(__name__)


def walk_images(root: Path) -> Iterator[Path]:
    """
    Yield every eligible image under root, depth-first.

    Directories named backup/temp are skipped at every level, not only the
    run's own staging area. Entries are visited in name order so the walk
    doesn't depend on how the filesystem happens to list a directory.
    Symlinked directories are not followed.

    Every call starts a fresh walk.
    """
    # Stack of directories still to list. Children are pushed in reverse so
    # the first name is popped (and fully walked) first.
    pending: List[Path] = [Path(root)]

    while pending:
        directory = pending.pop()

        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)

        subdirs: List[Path] = []
        for entry in entries:
            path = Path(entry.path)

            if entry.is_dir(follow_symlinks=False):
                if entry.name in RESERVED_DIRS:
                    logger.debug("Skipping reserved directory %s", path)
                    continue
                subdirs.append(path)
                continue

            if entry.is_file() and is_image(path):
                yield path

        pending.extend(reversed(subdirs))


def count_images(root: Path) -> int:
    """Number of files walk_images(root) would yield."""
    return sum(1 for _ in walk_images(root))
