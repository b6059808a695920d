"""Encode image sequences to JPEG 2000 codestreams with an external compressor."""

from __future__ import annotations

import logging
import math
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from postkit.media_detect import find_source_frames

logger = logging.getLogger(__name__)

_COMPRESSOR_NAME = "grk_compress"


class EncodeError(Exception):
    """Raised when encoding fails; records how many frames were done."""

    def __init__(
        self,
        message: str,
        frames_encoded: int = 0,
        output_dir: Path | None = None,
    ) -> None:
        super().__init__(message)
        self.frames_encoded = frames_encoded
        self.output_dir = output_dir


@dataclass
class EncodeOptions:
    """Options for encoding an image sequence to JPEG 2000."""

    input_dir: Path = field(default_factory=Path)
    output_dir: Path = field(default_factory=Path)
    bitrate_mbps: float = 250.0
    resolution: str = "2K"
    fps_num: int = 24
    fps_den: int = 1
    num_layers: int = 1
    progression: str = "CPRL"
    num_resolutions: int = 6
    codeblock_size: int = 32
    compressor_path: Path | None = None
    gpu_device: int = -1
    num_threads: int = 0
    lib_dir: Path | None = None


@dataclass
class EncodeResult:
    """Outcome of a successful encode."""

    frames_encoded: int
    output_dir: Path


def _format_number(value: float) -> str:
    if math.isfinite(value) and value == int(value):
        return str(int(value))
    return repr(float(value))


def _which_compressor() -> Path | None:
    found = shutil.which(_COMPRESSOR_NAME)
    return Path(found) if found else None


def find_compressor() -> tuple[Path, Path | None] | None:
    """Locate grk_compress and the library directory it needs, if any.

    A build under ``$HOME/bin/grok`` is preferred over one on PATH.
    """
    home = os.environ.get("HOME")
    if home:
        grok = Path(home) / "bin" / "grok"
        binary = grok / "bin" / _COMPRESSOR_NAME
        if binary.exists():
            return binary, grok / "lib64"
    found = _which_compressor()
    if found is not None:
        return found, None
    return None


def _compressor_command(
    compressor: Path, frame: Path, output: Path, opts: EncodeOptions
) -> list[str]:
    cmd = [
        str(compressor),
        "-i",
        str(frame),
        "-o",
        str(output),
        "-r",
        _format_number(opts.bitrate_mbps),
    ]
    if opts.gpu_device >= 0:
        cmd += ["-G", str(opts.gpu_device)]
    if opts.num_threads > 0:
        cmd += ["-t", str(opts.num_threads)]
    return cmd


def encode(opts: EncodeOptions) -> EncodeResult:
    """Encode every source frame in the input directory, one compressor run each."""
    compressor = (
        Path(opts.compressor_path) if opts.compressor_path else _which_compressor()
    )
    if compressor is None:
        raise EncodeError(
            "grk_compress not found in PATH and no compressor_path specified"
        )

    try:
        frames = find_source_frames(opts.input_dir)
    except OSError as exc:
        raise EncodeError(f"Failed to read input directory: {exc}") from exc
    if not frames:
        raise EncodeError("No source image files found in input directory")

    output_dir = Path(opts.output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise EncodeError(f"Failed to create output directory: {exc}") from exc

    env = None
    if opts.lib_dir is not None:
        env = {**os.environ, "LD_LIBRARY_PATH": str(opts.lib_dir)}

    encoded = 0
    for frame in frames:
        output = output_dir / f"{frame.stem}.j2c"
        cmd = _compressor_command(compressor, frame, output, opts)
        try:
            completed = subprocess.run(cmd, capture_output=True, env=env)
        except OSError as exc:
            raise EncodeError(
                f"Failed to spawn compressor: {exc}", encoded, output_dir
            ) from exc
        if completed.returncode != 0:
            stderr = completed.stderr.decode("utf-8", errors="replace")
            logger.error("Encode failed for %s: %s", frame, stderr)
            raise EncodeError(
                f"Encode failed at frame {encoded}: {stderr}", encoded, output_dir
            )
        encoded += 1

    return EncodeResult(frames_encoded=encoded, output_dir=output_dir)