from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from .classify import BACKUP_DIR_NAME, TEMP_DIR_NAME

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagingArea:
    """
    The backup/ and temp/ directories of one run.

    backup/ keeps a copy of every original that got replaced and is never
    cleared automatically. temp/ holds compressed output until it is moved
    over the original, and goes away once the walk finishes.
    """
    root: Path
    backup_dir: Path
    temp_dir: Path

    def relative(self, path: Path) -> Path:
        return Path(path).relative_to(self.root)


def ensure_staging(root: Path) -> StagingArea:
    """Create backup/ and temp/ under root. Safe to call on an already staged tree."""
    root = Path(root)
    area = StagingArea(
        root=root,
        backup_dir=root / BACKUP_DIR_NAME,
        temp_dir=root / TEMP_DIR_NAME,
    )
    area.backup_dir.mkdir(parents=True, exist_ok=True)
    area.temp_dir.mkdir(parents=True, exist_ok=True)
    return area


def mirror_dir(base: Path, relative_dir: Path) -> Path:
    target = Path(base) / relative_dir
    target.mkdir(parents=True, exist_ok=True)
    return target


def teardown_temp(area: StagingArea) -> None:
    if area.temp_dir.exists():
        shutil.rmtree(area.temp_dir)
        logger.debug("Removed %s", area.temp_dir)
