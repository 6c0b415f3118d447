from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class CompressionResult:
    """
    What the codec produced for one file: a destination path or a failure
    message, never both.
    """
    source: Path
    destination_path: Optional[Path] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, source: Path, destination_path: Path) -> "CompressionResult":
        return cls(source=source, destination_path=destination_path)

    @classmethod
    def failure(cls, source: Path, message: str) -> "CompressionResult":
        return cls(source=source, message=message)

    @property
    def ok(self) -> bool:
        return self.destination_path is not None and self.message is None


@dataclass(frozen=True)
class ProcessResult:
    """
    How one image fared in the backup/replace step.

    changed=True means the original now sits in backup/ (backup_path) and the
    compressed file took its place; otherwise skipped_reason says why not.
    """
    src_path: Path
    backup_path: Optional[Path]  # None if the original was left alone
    src_bytes: int
    out_bytes: int
    changed: bool
    skipped_reason: Optional[str] = None

    @property
    def saved_bytes(self) -> int:
        return max(0, self.src_bytes - self.out_bytes)

    @property
    def saved_percent(self) -> float:
        if self.src_bytes <= 0:
            return 0.0
        return (self.saved_bytes / self.src_bytes) * 100.0
