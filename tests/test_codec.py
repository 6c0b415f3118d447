import subprocess
import sys
from pathlib import Path

import pytest
from PIL import Image

from bic import codec as codec_module
from bic.codec import ImageCodec, find_tool


def test_pillow_jpeg_writes_one_file_named_like_source(tmp_path: Path, make_image, config_for):
    src = make_image(tmp_path / "photo.JPG", size=(64, 48))
    dest = tmp_path / "temp" / "sub"

    result = ImageCodec().compress(src, dest, config_for(tmp_path, quality=40))

    assert result.ok
    assert result.destination_path == dest / "photo.JPG"
    assert list(dest.iterdir()) == [dest / "photo.JPG"]
    with Image.open(result.destination_path) as im:
        assert im.format == "JPEG"
    # source untouched
    assert src.exists()


def test_pillow_png_is_quantized(tmp_path: Path, make_image, config_for):
    src = make_image(tmp_path / "icon.png")

    result = ImageCodec().compress(src, tmp_path / "out", config_for(tmp_path))

    assert result.ok
    with Image.open(result.destination_path) as im:
        assert im.format == "PNG"
        assert im.mode == "P"


def test_png_with_alpha(tmp_path: Path, config_for):
    src = tmp_path / "alpha.png"
    Image.new("RGBA", (16, 16), (10, 20, 30, 128)).save(src)

    result = ImageCodec().compress(src, tmp_path / "out", config_for(tmp_path))

    assert result.ok


def test_quality_zero_still_encodes_jpeg(tmp_path: Path, make_image, config_for):
    src = make_image(tmp_path / "a.jpeg")

    result = ImageCodec().compress(src, tmp_path / "out", config_for(tmp_path, quality=0))

    assert result.ok


def test_unreadable_image_becomes_failure(tmp_path: Path, config_for):
    src = tmp_path / "broken.png"
    src.write_bytes(b"definitely not a png")

    result = ImageCodec().compress(src, tmp_path / "out", config_for(tmp_path))

    assert not result.ok
    assert result.destination_path is None
    assert result.message
    assert not (tmp_path / "out" / "broken.png").exists()


def test_jpeg_goes_through_cjpeg_when_available(tmp_path: Path, make_image, config_for, monkeypatch):
    src = make_image(tmp_path / "a.jpg")
    seen = []

    def fake_run(command):
        seen.append(command)
        out = Path(command[command.index("-outfile") + 1])
        out.write_bytes(b"jpegdata")
        return subprocess.CompletedProcess(command, 0, b"", b"")

    monkeypatch.setattr(codec_module, "run_command", fake_run)

    result = ImageCodec(cjpeg="/usr/bin/cjpeg").compress(src, tmp_path / "out", config_for(tmp_path, quality=75))

    assert result.ok
    assert seen[0][:3] == ["/usr/bin/cjpeg", "-quality", "75"]
    assert seen[0][-1] == str(src)


def test_cjpeg_skipped_when_keeping_metadata(tmp_path: Path, make_image, config_for, monkeypatch):
    src = make_image(tmp_path / "a.jpg")

    def fail_run(command):
        raise AssertionError("cjpeg should not run")

    monkeypatch.setattr(codec_module, "run_command", fail_run)

    result = ImageCodec(cjpeg="/usr/bin/cjpeg").compress(
        src, tmp_path / "out", config_for(tmp_path, strip_metadata=False)
    )

    assert result.ok


def test_pngquant_gets_integer_quality_range(tmp_path: Path, make_image, config_for, monkeypatch):
    src = make_image(tmp_path / "a.png")
    seen = []

    def fake_run(command):
        seen.append(command)
        out = Path(command[command.index("--output") + 1])
        out.write_bytes(b"pngdata")
        return subprocess.CompletedProcess(command, 0, b"", b"")

    monkeypatch.setattr(codec_module, "run_command", fake_run)

    result = ImageCodec(pngquant="pngquant").compress(src, tmp_path / "out", config_for(tmp_path, quality=80))

    assert result.ok
    assert seen[0][1:3] == ["--quality", "70-80"]
    assert "--strip" in seen[0]


def test_failing_pngquant_falls_back_to_pillow(tmp_path: Path, make_image, config_for, monkeypatch):
    src = make_image(tmp_path / "a.png")

    monkeypatch.setattr(
        codec_module,
        "run_command",
        lambda command: subprocess.CompletedProcess(command, 99, b"", b"quality too low"),
    )

    result = ImageCodec(pngquant="pngquant").compress(src, tmp_path / "out", config_for(tmp_path))

    assert result.ok
    with Image.open(result.destination_path) as im:
        assert im.format == "PNG"


@pytest.mark.skipif(sys.platform.startswith("win"), reason="needs a POSIX shell script as the tool")
def test_cjpeg_that_cannot_read_jpeg_falls_back_to_pillow(tmp_path: Path, make_image, config_for):
    src = make_image(tmp_path / "a.jpg")
    tool = tmp_path / "cjpeg"
    tool.write_text("#!/bin/sh\necho 'Unrecognized input file format' >&2\nexit 1\n")
    tool.chmod(0o755)

    result = ImageCodec(cjpeg=str(tool)).compress(src, tmp_path / "out", config_for(tmp_path))

    assert result.ok
    with Image.open(result.destination_path) as im:
        assert im.format == "JPEG"


def test_empty_tool_output_falls_back_to_pillow(tmp_path: Path, make_image, config_for, monkeypatch):
    src = make_image(tmp_path / "a.png")

    def fake_run(command):
        Path(command[command.index("--output") + 1]).write_bytes(b"")
        return subprocess.CompletedProcess(command, 0, b"", b"")

    monkeypatch.setattr(codec_module, "run_command", fake_run)

    result = ImageCodec(pngquant="pngquant").compress(src, tmp_path / "out", config_for(tmp_path))

    assert result.ok
    assert (tmp_path / "out" / "a.png").stat().st_size > 0


def test_failing_tool_and_unreadable_image_is_failure(tmp_path: Path, config_for, monkeypatch):
    src = tmp_path / "broken.jpg"
    src.write_bytes(b"not a jpeg")

    monkeypatch.setattr(
        codec_module,
        "run_command",
        lambda command: subprocess.CompletedProcess(command, 1, b"", b"Not a JPEG file"),
    )

    result = ImageCodec(cjpeg="cjpeg").compress(src, tmp_path / "out", config_for(tmp_path))

    assert not result.ok
    assert not (tmp_path / "out" / "broken.jpg").exists()


def test_find_tool(monkeypatch):
    monkeypatch.setattr(codec_module.shutil, "which", lambda name: "/opt/bin/mozjpeg" if name == "mozjpeg" else None)

    assert find_tool(["cjpeg", "mozjpeg"]) == "/opt/bin/mozjpeg"
    assert find_tool(["pngquant"]) is None


def test_detect_prefers_mozjpeg_over_plain_cjpeg(monkeypatch):
    available = {"cjpeg": "/usr/bin/cjpeg", "mozjpeg": "/opt/mozjpeg/bin/mozjpeg"}
    monkeypatch.setattr(codec_module.shutil, "which", lambda name: available.get(name))

    assert ImageCodec.detect().cjpeg == "/opt/mozjpeg/bin/mozjpeg"
