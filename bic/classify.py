from __future__ import annotations

from pathlib import Path


SUPPORTED_EXTS = {".png", ".jpg", ".jpeg"}
JPEG_EXTS = {".jpg", ".jpeg"}

# Staging directory names. Any directory with one of these names is never
# traversed, wherever it sits in the tree.
BACKUP_DIR_NAME = "backup"
TEMP_DIR_NAME = "temp"
RESERVED_DIRS = (BACKUP_DIR_NAME, TEMP_DIR_NAME)


def _is_relative_to(child: Path, parent: Path) -> bool:
    """Compat helper for Python < 3.9 Path.is_relative_to()."""
    try:
        child.relative_to(parent)
        return True
    except ValueError:
        return False


def is_image(path: Path) -> bool:
    return Path(path).suffix.lower() in SUPPORTED_EXTS


def is_jpeg(path: Path) -> bool:
    return Path(path).suffix.lower() in JPEG_EXTS


def is_reserved(containing_dir: Path, path: Path) -> bool:
    """True if path is (or lies inside) containing_dir/backup or containing_dir/temp."""
    path = Path(path)
    containing_dir = Path(containing_dir)
    return any(_is_relative_to(path, containing_dir / name) for name in RESERVED_DIRS)
