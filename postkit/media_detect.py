"""Detect image formats and input types, and find source frame sequences."""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class ImageFormat(Enum):
    """Image format detected from a file extension."""

    DPX = "Dpx"
    TIFF = "Tiff"
    EXR = "Exr"
    PNG = "Png"
    BMP = "Bmp"
    UNKNOWN = "Unknown"


class InputType(Enum):
    """Kind of input, used to route it through the pipeline."""

    VIDEO = "Video"
    IMAGE_SEQUENCE = "ImageSequence"
    J2K_SEQUENCE = "J2kSequence"
    UNKNOWN = "Unknown"


_IMAGE_FORMATS = {
    ".dpx": ImageFormat.DPX,
    ".tif": ImageFormat.TIFF,
    ".tiff": ImageFormat.TIFF,
    ".exr": ImageFormat.EXR,
    ".png": ImageFormat.PNG,
    ".bmp": ImageFormat.BMP,
}

_J2K_EXTENSIONS = frozenset({".j2c", ".j2k"})
_SEQUENCE_EXTENSIONS = frozenset({".tif", ".tiff", ".dpx", ".exr", ".bmp"})
_VIDEO_EXTENSIONS = frozenset(
    {".mp4", ".mkv", ".mov", ".avi", ".mxf", ".webm", ".ts", ".m2ts"}
)


def _classify_member(suffix: str) -> InputType | None:
    if suffix in _J2K_EXTENSIONS:
        return InputType.J2K_SEQUENCE
    if suffix in _SEQUENCE_EXTENSIONS:
        return InputType.IMAGE_SEQUENCE
    return None


def detect_input_type(path: str | Path) -> InputType:
    """Detect whether a path is a video, an image sequence or a J2K sequence.

    A directory is classified by the first recognised file in it; anything
    else by its own extension.
    """
    path = Path(path)
    if path.is_dir():
        try:
            entries = sorted(path.iterdir())
        except OSError:
            return InputType.UNKNOWN
        for entry in entries:
            kind = _classify_member(entry.suffix.lower())
            if kind is not None:
                return kind
        return InputType.UNKNOWN

    suffix = path.suffix.lower()
    if suffix in _VIDEO_EXTENSIONS:
        return InputType.VIDEO
    return _classify_member(suffix) or InputType.UNKNOWN


def detect_image_format(path: str | Path) -> ImageFormat:
    """Detect the image format from the file extension."""
    return _IMAGE_FORMATS.get(Path(path).suffix.lower(), ImageFormat.UNKNOWN)


def find_source_frames(directory: str | Path) -> list[Path]:
    """Image files in a directory, sorted by name.

    Raises OSError if the directory cannot be read.
    """
    return sorted(
        entry
        for entry in Path(directory).iterdir()
        if entry.is_file() and detect_image_format(entry) is not ImageFormat.UNKNOWN
    )