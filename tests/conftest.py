"""Shared fixtures: tiny generated images and a codec that never touches Pillow."""

from pathlib import Path
from typing import Callable, List, Optional

import pytest
from PIL import Image

from bic.results import CompressionResult
from bic.settings import RunConfig


def write_image(path: Path, size=(32, 24), color=(200, 40, 90)) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    fmt = "JPEG" if path.suffix.lower() in (".jpg", ".jpeg") else "PNG"
    Image.new("RGB", size, color).save(path, format=fmt)
    return path


class FakeCodec:
    """Writes a small marker file per call; fail_for names files that should fail."""

    def __init__(self, fail_for=(), empty_for=(), malformed_for=()) -> None:
        self.fail_for = set(fail_for)
        self.empty_for = set(empty_for)
        self.malformed_for = set(malformed_for)
        self.calls: List[Path] = []

    def compress(self, source: Path, destination_dir: Path, config: RunConfig) -> Optional[CompressionResult]:
        self.calls.append(Path(source))
        name = Path(source).name
        if name in self.fail_for:
            return CompressionResult.failure(source, "boom")
        if name in self.empty_for:
            return None
        if name in self.malformed_for:
            return CompressionResult(source=source)

        out = Path(destination_dir) / name
        out.write_bytes(b"compressed:" + name.encode())
        return CompressionResult.success(source, out)


class RecordingProgress:
    def __init__(self) -> None:
        self.total: Optional[int] = None
        self.ticks = 0
        self.closed = False

    def start(self, total: int) -> None:
        self.total = total

    def tick(self) -> None:
        self.ticks += 1

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_image() -> Callable[..., Path]:
    return write_image


@pytest.fixture
def config_for() -> Callable[..., RunConfig]:
    def _make(root: Path, quality: int = 80, strip_metadata: bool = True) -> RunConfig:
        return RunConfig.from_quality(root, quality, strip_metadata=strip_metadata)

    return _make
