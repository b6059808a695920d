"""Burn subtitles or text into video frames with ffmpeg."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path


class BurninError(OSError):
    """Raised when ffmpeg fails to burn in subtitles or text."""


@dataclass
class BurninOptions:
    """Options for a subtitle or text burn-in."""

    input: Path
    output: Path
    subtitle_file: Path | None = None
    text: str | None = None
    font_size: int = 0
    font_colour: str = ""
    position: str = ""


_Y_POSITIONS = {"top": "10", "center": "(h-text_h)/2"}


def build_burnin_args(opts: BurninOptions) -> list[str]:
    """Build the ffmpeg argument list (without the program name)."""
    args = ["-i", str(opts.input)]
    if opts.subtitle_file is not None:
        args += ["-vf", f"subtitles={opts.subtitle_file}"]
    elif opts.text is not None:
        fontsize = opts.font_size if opts.font_size > 0 else 24
        colour = opts.font_colour or "white"
        y_pos = _Y_POSITIONS.get(opts.position, "h-th-10")
        args += [
            "-vf",
            f"drawtext=text='{opts.text}':fontsize={fontsize}:fontcolor={colour}"
            f":x=(w-text_w)/2:y={y_pos}",
        ]
    args += ["-y", str(opts.output)]
    return args


def burnin(opts: BurninOptions) -> None:
    """Run ffmpeg to burn subtitles or text into the input video."""
    completed = subprocess.run(
        ["ffmpeg", *build_burnin_args(opts)], capture_output=True
    )
    if completed.returncode != 0:
        stderr = completed.stderr.decode("utf-8", errors="replace")
        raise BurninError(f"ffmpeg burn-in failed: {stderr}")