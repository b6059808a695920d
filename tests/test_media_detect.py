from pathlib import Path

import pytest

from postkit.media_detect import (
    ImageFormat,
    InputType,
    detect_image_format,
    detect_input_type,
    find_source_frames,
)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("frame.dpx", ImageFormat.DPX),
        ("frame.tif", ImageFormat.TIFF),
        ("frame.TIFF", ImageFormat.TIFF),
        ("frame.exr", ImageFormat.EXR),
        ("frame.png", ImageFormat.PNG),
        ("frame.BMP", ImageFormat.BMP),
        ("frame.jpg", ImageFormat.UNKNOWN),
        ("frame", ImageFormat.UNKNOWN),
    ],
)
def test_detect_image_format(name, expected):
    assert detect_image_format(Path(name)) is expected


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("clip.mp4", InputType.VIDEO),
        ("clip.MOV", InputType.VIDEO),
        ("clip.mxf", InputType.VIDEO),
        ("clip.m2ts", InputType.VIDEO),
        ("frame.dpx", InputType.IMAGE_SEQUENCE),
        ("frame.j2c", InputType.J2K_SEQUENCE),
        ("frame.J2K", InputType.J2K_SEQUENCE),
        ("notes.txt", InputType.UNKNOWN),
        ("frame.png", InputType.UNKNOWN),
    ],
)
def test_detect_input_type_for_files(name, expected):
    assert detect_input_type(name) is expected


def test_directory_of_j2k_frames(tmp_path):
    (tmp_path / "frame_0001.j2c").write_bytes(b"")
    (tmp_path / "readme.txt").write_text("x")
    assert detect_input_type(tmp_path) is InputType.J2K_SEQUENCE


def test_directory_of_tiff_frames(tmp_path):
    (tmp_path / "frame_0001.tif").write_bytes(b"")
    assert detect_input_type(tmp_path) is InputType.IMAGE_SEQUENCE


def test_directory_without_frames_is_unknown(tmp_path):
    (tmp_path / "readme.txt").write_text("x")
    (tmp_path / "frame.png").write_bytes(b"")
    assert detect_input_type(tmp_path) is InputType.UNKNOWN


def test_find_source_frames_sorted_and_filtered(tmp_path):
    for name in ["b.dpx", "a.tif", "c.exr", "notes.txt", "d.png"]:
        (tmp_path / name).write_bytes(b"")
    (tmp_path / "sub.dpx").mkdir()
    frames = find_source_frames(tmp_path)
    assert [frame.name for frame in frames] == ["a.tif", "b.dpx", "c.exr", "d.png"]
    assert frames == sorted(frames)


def test_find_source_frames_empty_directory(tmp_path):
    assert find_source_frames(tmp_path) == []


def test_find_source_frames_missing_directory_raises(tmp_path):
    with pytest.raises(OSError):
        find_source_frames(tmp_path / "missing")