from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple


# (low, high) as fractions of 1.0, the scale pngquant-style quantizers use.
PngQualityRange = Tuple[float, float]


class ConfigError(ValueError):
    """Raised when a RunConfig cannot be used for a run."""


def png_quality_range(quality: int) -> PngQualityRange:
    """
    Derive the PNG quality range from a single 0-100 quality.

    80 -> (0.70, 0.80). The low end never drops below 0.
    """
    q = int(quality)
    low = max(0.0, (q - 10) / 100)
    high = q / 100
    return low, high


@dataclass(frozen=True)
class RunConfig:
    """
    Everything one compression run needs to know.

    Pure data, built by the CLI (arguments or prompts) and validated there
    before it reaches the pipeline.
    """

    root: Path

    # ----- JPEG encoding -----
    # 0-100, higher = better looking and bigger.
    jpeg_quality: int = 80

    # ----- PNG encoding -----
    # Accepted quality window for quantization, both ends in [0, 1].
    png_quality: PngQualityRange = (0.70, 0.80)

    # ----- Metadata -----
    strip_metadata: bool = True

    @classmethod
    def from_quality(cls, root: Path, quality: int, strip_metadata: bool = True) -> "RunConfig":
        return cls(
            root=Path(root),
            jpeg_quality=int(quality),
            png_quality=png_quality_range(quality),
            strip_metadata=bool(strip_metadata),
        )

    def validate(self) -> "RunConfig":
        root = Path(self.root)
        if not root.exists():
            raise ConfigError(f"directory does not exist: {root}")
        if not root.is_dir():
            raise ConfigError(f"not a directory: {root}")

        if not 0 <= int(self.jpeg_quality) <= 100:
            raise ConfigError(f"jpeg quality must be within 0-100, got {self.jpeg_quality}")

        low, high = self.png_quality
        if not (0.0 <= low <= 1.0 and 0.0 <= high <= 1.0):
            raise ConfigError(f"png quality range must be within [0, 1], got {self.png_quality}")
        if low > high:
            raise ConfigError(f"png quality range is inverted: {self.png_quality}")

        return self
