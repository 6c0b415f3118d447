from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from .codec import Codec, ImageCodec
from .progress import NullProgress, ProgressSink
from .results import ProcessResult
from .settings import RunConfig
from .staging import StagingArea, ensure_staging, mirror_dir, teardown_temp
from .walker import count_images, walk_images

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunSummary:
    total: int
    completed: int
    failed: int
    total_src_bytes: int
    total_out_bytes: int
    error: Optional[str] = None  # set when the run was aborted

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def saved_bytes(self) -> int:
        return max(0, self.total_src_bytes - self.total_out_bytes)

    @property
    def saved_percent(self) -> float:
        if self.total_src_bytes <= 0:
            return 0.0
        return (self.saved_bytes / self.total_src_bytes) * 100.0


def _file_size(p: Path) -> int:
    try:
        return p.stat().st_size
    except FileNotFoundError:
        return 0


def _skipped(src_path: Path, src_bytes: int, reason: str) -> ProcessResult:
    return ProcessResult(
        src_path=src_path,
        backup_path=None,
        src_bytes=src_bytes,
        out_bytes=src_bytes,
        changed=False,
        skipped_reason=reason,
    )


def process_image(
    src_path: Path,
    staging: StagingArea,
    config: RunConfig,
    codec: Codec,
) -> ProcessResult:
    """
    Compress one image and swap it in place, keeping the original in backup/.

    Codec failures leave the original untouched and come back as a skipped
    result. Filesystem errors while backing up or replacing are not caught
    here; the backup copy is written before the original is touched.
    """
    src_path = Path(src_path)
    rel_dir = staging.relative(src_path.parent)
    src_bytes = _file_size(src_path)

    result = codec.compress(src_path, mirror_dir(staging.temp_dir, rel_dir), config)

    if result is None:
        logger.error("No compressed file produced for %s", src_path)
        return _skipped(src_path, src_bytes, "empty_result")

    if not result.ok:
        if result.message:
            logger.error("Failed to compress %s: %s", src_path, result.message)
            return _skipped(src_path, src_bytes, "codec_error")
        logger.error("Compressed result is malformed for %s", src_path)
        return _skipped(src_path, src_bytes, "malformed_result")

    compressed = Path(result.destination_path)
    if not compressed.is_file():
        logger.error("Compressed result is malformed for %s: %s is missing", src_path, compressed)
        return _skipped(src_path, src_bytes, "malformed_result")

    backup_path = mirror_dir(staging.backup_dir, rel_dir) / src_path.name
    shutil.copy2(src_path, backup_path)

    # The original path is never missing: the compressed file replaces it atomically.
    os.replace(compressed, src_path)

    out_bytes = _file_size(src_path)
    logger.debug("Compressed %s (%d -> %d bytes)", src_path, src_bytes, out_bytes)

    return ProcessResult(
        src_path=src_path,
        backup_path=backup_path,
        src_bytes=src_bytes,
        out_bytes=out_bytes,
        changed=True,
        skipped_reason=None,
    )


def compress_tree(
    config: RunConfig,
    codec: Optional[Codec] = None,
    progress: Optional[ProgressSink] = None,
) -> Tuple[List[ProcessResult], RunSummary]:
    """
    Compress every eligible image under config.root in place.

    The total is counted before anything is modified; progress ticks once per
    replaced file. A failure on one file never stops the run. Anything else
    that goes wrong is logged with its traceback and ends the run, leaving
    temp/ behind for inspection.
    """
    if codec is None:
        codec = ImageCodec.detect()
    if progress is None:
        progress = NullProgress()

    root = Path(config.root)
    results: List[ProcessResult] = []
    total = 0
    error: Optional[str] = None

    try:
        staging = ensure_staging(root)
        total = count_images(root)
        logger.info("Found %d images under %s", total, root)
        progress.start(total)

        for img_path in walk_images(root):
            r = process_image(img_path, staging, config, codec)
            results.append(r)
            if r.changed:
                progress.tick()

        teardown_temp(staging)
    except Exception as e:
        logger.exception("Run aborted: %s", e)
        error = f"{e.__class__.__name__}: {e}"
    finally:
        progress.close()

    completed = sum(1 for r in results if r.changed)
    summary = RunSummary(
        total=total,
        completed=completed,
        failed=len(results) - completed,
        total_src_bytes=sum(r.src_bytes for r in results),
        total_out_bytes=sum(r.out_bytes for r in results),
        error=error,
    )
    return results, summary
