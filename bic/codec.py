from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from PIL import Image, ImageOps

from .classify import is_jpeg
from .results import CompressionResult
from .settings import RunConfig

logger = logging.getLogger(__name__)


# A plain libjpeg cjpeg cannot read JPEG input; prefer the mozjpeg name.
JPEG_TOOLS = ["mozjpeg", "cjpeg"]
PNG_TOOLS = ["pngquant"]


class CodecError(RuntimeError):
    """An encoder ran but did not produce usable output."""


class Codec(Protocol):
    def compress(self, source: Path, destination_dir: Path, config: RunConfig) -> Optional[CompressionResult]:
        ...


def _try_tool(command: List[str], tool: str, output: Path) -> bool:
    """Run an external encoder; False (with output removed) sends the caller on to Pillow."""
    try:
        _check(run_command(command), tool, output)
    except (CodecError, OSError, subprocess.SubprocessError) as e:
        logger.debug("%s failed, falling back to Pillow: %s", Path(tool).name, e)
        _discard(output)
        return False
    return True


def find_tool(names: Sequence[str]) -> Optional[str]:
    for name in names:
        found = shutil.which(name)
        if found:
            return found
    return None


def run_command(command: List[str]) -> subprocess.CompletedProcess:
    return subprocess.run(command, capture_output=True)


class ImageCodec:
    """
    JPEG goes through mozjpeg's cjpeg, PNG through pngquant.

    Either tool may be missing or fail on a file; Pillow does the job then. ImageCodec() with
    no arguments is Pillow-only, ImageCodec.detect() looks the tools up on PATH.
    """

    def __init__(self, cjpeg: Optional[str] = None, pngquant: Optional[str] = None) -> None:
        self.cjpeg = cjpeg
        self.pngquant = pngquant

    @classmethod
    def detect(cls) -> "ImageCodec":
        codec = cls(cjpeg=find_tool(JPEG_TOOLS), pngquant=find_tool(PNG_TOOLS))
        logger.debug("JPEG engine: %s, PNG engine: %s", codec.cjpeg or "Pillow", codec.pngquant or "Pillow")
        return codec

    def compress(self, source: Path, destination_dir: Path, config: RunConfig) -> CompressionResult:
        source = Path(source)
        output = Path(destination_dir) / source.name

        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            if is_jpeg(source):
                engine = self._compress_jpeg(source, output, config)
            else:
                engine = self._compress_png(source, output, config)
        except Exception as e:
            _discard(output)
            return CompressionResult.failure(source, f"{e.__class__.__name__}: {e}")

        if _file_size(output) == 0:
            _discard(output)
            return CompressionResult.failure(source, "no compressed output produced")

        logger.debug("%s compressed with %s", source, engine)
        return CompressionResult.success(source, output)

    # ----- JPEG -----

    def _compress_jpeg(self, source: Path, output: Path, config: RunConfig) -> str:
        quality = _clamp_quality(config.jpeg_quality)

        # cjpeg never carries metadata over, so it is only usable when stripping.
        if self.cjpeg and config.strip_metadata:
            command = [
                self.cjpeg,
                "-quality",
                str(quality),
                "-optimize",
                "-progressive",
                "-outfile",
                str(output),
                str(source),
            ]
            if _try_tool(command, self.cjpeg, output):
                return "mozjpeg"

        with Image.open(source) as im:
            im.load()
            kwargs = _metadata_kwargs(im, config.strip_metadata)
            if config.strip_metadata:
                im = ImageOps.exif_transpose(im)
            if im.mode not in ("RGB", "L", "CMYK"):
                im = im.convert("RGB")
            im.save(output, format="JPEG", quality=quality, optimize=True, progressive=True, **kwargs)
        return "Pillow"

    # ----- PNG -----

    def _compress_png(self, source: Path, output: Path, config: RunConfig) -> str:
        low, high = config.png_quality

        if self.pngquant:
            command = [
                self.pngquant,
                "--quality",
                f"{round(low * 100)}-{round(high * 100)}",
                "--force",
                "--output",
                str(output),
            ]
            if config.strip_metadata:
                command.append("--strip")
            command.append(str(source))
            if _try_tool(command, self.pngquant, output):
                return "pngquant"

        with Image.open(source) as im:
            im.load()
            kwargs = _metadata_kwargs(im, config.strip_metadata)
            colors = max(2, min(256, int(256 * high)))
            quantized = _quantize(im, colors)
            quantized.save(output, format="PNG", optimize=True, compress_level=9, **kwargs)
        return "Pillow"


def _quantize(im: Image.Image, colors: int) -> Image.Image:
    fast_octree = 2
    median_cut = 0
    if _has_alpha(im):
        return im.convert("RGBA").quantize(colors=colors, method=fast_octree)
    return im.convert("RGB").quantize(colors=colors, method=median_cut)


def _metadata_kwargs(im: Image.Image, strip_metadata: bool) -> dict:
    # When stripping we simply don't pass exif / icc_profile on.
    kwargs: dict = {}
    if strip_metadata:
        return kwargs

    exif = im.info.get("exif")
    if exif is not None:
        kwargs["exif"] = exif

    icc = im.info.get("icc_profile")
    if icc is not None:
        kwargs["icc_profile"] = icc

    return kwargs


def _check(result: subprocess.CompletedProcess, tool: str, output: Path) -> None:
    if result.returncode != 0:
        detail = (result.stderr or b"").decode("utf-8", errors="replace").strip()
        raise CodecError(f"{Path(tool).name} exited with {result.returncode}: {detail}")
    if _file_size(output) == 0:
        raise CodecError(f"{Path(tool).name} produced no output")


def _clamp_quality(quality: int) -> int:
    return max(1, min(100, int(quality)))


def _has_alpha(im: Image.Image) -> bool:
    if im.mode in ("RGBA", "LA"):
        return True
    if im.mode == "P" and "transparency" in im.info:
        return True
    return False


def _file_size(p: Path) -> int:
    try:
        return p.stat().st_size
    except FileNotFoundError:
        return 0


def _discard(p: Path) -> None:
    try:
        p.unlink()
    except FileNotFoundError:
        pass
