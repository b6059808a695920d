"""Colour-space conversion via ffmpeg and an in-memory RGB to X'Y'Z' transform."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path

import numpy as np


class ColourConversionError(OSError):
    """Raised when ffmpeg fails to convert colour."""


class ColourSpace(Enum):
    """Colour space identifier."""

    REC709 = "Rec709"
    P3 = "P3"
    XYZ = "Xyz"
    REC2020 = "Rec2020"
    ACES = "Aces"
    ACES_CG = "AcesCg"
    LOGC = "LogC"


@dataclass
class ColourConvertOptions:
    """Options for a colour conversion."""

    input: Path
    output: Path
    source_space: ColourSpace
    target_space: ColourSpace
    lut_path: Path | None = None


_FFMPEG_PARAMS = {
    ColourSpace.REC709: ("bt709", "bt709", "bt709"),
    ColourSpace.P3: ("bt709", "smpte431", "bt709"),
    ColourSpace.XYZ: ("bt709", "bt709", "linear"),
    ColourSpace.REC2020: ("bt2020ncl", "bt2020", "bt2020-10"),
    ColourSpace.ACES: ("bt709", "bt709", "linear"),
    ColourSpace.ACES_CG: ("bt709", "bt709", "linear"),
    ColourSpace.LOGC: ("bt709", "bt709", "log"),
}


def ffmpeg_color_params(space: ColourSpace) -> tuple[str, str, str]:
    """Return ffmpeg (colorspace, primaries, trc) names for a colour space."""
    return _FFMPEG_PARAMS[space]


def build_colour_filter(opts: ColourConvertOptions) -> str:
    """Build the ffmpeg -vf filter string for a conversion."""
    if opts.lut_path is not None:
        return f"lut3d={opts.lut_path}"
    colorspace, primaries, trc = ffmpeg_color_params(opts.target_space)
    in_colorspace, in_primaries, in_trc = ffmpeg_color_params(opts.source_space)
    return (
        f"colorspace=all={colorspace}:iall={in_colorspace}:iprimaries={in_primaries}"
        f":itrc={in_trc}:primaries={primaries}:trc={trc}"
    )


def convert_colour(opts: ColourConvertOptions) -> None:
    """Convert the colour space of an image or video with ffmpeg."""
    cmd = [
        "ffmpeg",
        "-y",
        "-i",
        str(opts.input),
        "-vf",
        build_colour_filter(opts),
        str(opts.output),
    ]
    completed = subprocess.run(cmd, capture_output=True)
    if completed.returncode != 0:
        stderr = completed.stderr.decode("utf-8", errors="replace")
        raise ColourConversionError(f"ffmpeg colour conversion failed: {stderr}")


@lru_cache(maxsize=1)
def _luts() -> tuple[np.ndarray, np.ndarray]:
    codes = np.arange(65536, dtype=np.float64) / 65535.0
    # Rec.709 inverse OETF: gamma-encoded -> linear
    linear = np.where(
        codes <= 0.081,
        codes / 4.5,
        np.power((codes + 0.099) / 1.099, 1.0 / 0.45),
    ).astype(np.float32)
    # DCI 2.6 gamma: linear -> X'Y'Z'
    gamma = np.where(codes <= 0.0, 0.0, np.power(codes, 1.0 / 2.6))
    gamma_lut = (np.clip(gamma, 0.0, 1.0) * 65535.0 + 0.5).astype(np.uint16)
    return linear, gamma_lut


_MATRIX = (
    (np.float32(0.4124564), np.float32(0.3575761), np.float32(0.1804375)),
    (np.float32(0.2126729), np.float32(0.7151522), np.float32(0.0721750)),
    (np.float32(0.0193339), np.float32(0.119192), np.float32(0.9503041)),
)


def rgb_to_xyz(data: bytes) -> bytes:
    """Transform rgb48be pixel data to DCI X'Y'Z' in the same layout.

    Pipeline: Rec.709 linearisation, Rec.709-to-XYZ matrix, DCI 2.6 gamma.
    Bytes past the last whole pixel are passed through unchanged.
    """
    usable = len(data) - len(data) % 6
    if usable == 0:
        return bytes(data)
    linear_lut, gamma_lut = _luts()
    samples = np.frombuffer(bytes(data[:usable]), dtype=">u2").reshape(-1, 3)
    r = linear_lut[samples[:, 0]]
    g = linear_lut[samples[:, 1]]
    b = linear_lut[samples[:, 2]]

    out = np.empty_like(samples, dtype=">u2")
    one = np.float32(1.0)
    scale = np.float32(65535.0)
    half = np.float32(0.5)
    for column, (kr, kg, kb) in enumerate(_MATRIX):
        value = kr * r + kg * g + kb * b
        index = (np.clip(value, np.float32(0.0), one) * scale + half).astype(np.int64)
        out[:, column] = gamma_lut[index]
    return out.tobytes() + bytes(data[usable:])