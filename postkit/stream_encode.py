"""Stream a video through ffmpeg into per-frame JPEG 2000 compressor runs."""

from __future__ import annotations

import logging
import math
import os
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, Protocol

from postkit.encode import EncodeError, EncodeResult, find_compressor

logger = logging.getLogger(__name__)

_PAUSE_POLL_SECONDS = 0.1
_PROGRESS_EVERY = 5


class _Flag(Protocol):
    def is_set(self) -> bool: ...


class EncodeCancelled(EncodeError):
    """Raised when a streaming encode is cancelled."""


@dataclass
class StreamEncodeOptions:
    """Options for encoding a video to J2K without intermediate files."""

    input: Path = field(default_factory=Path)
    output_dir: Path = field(default_factory=Path)
    compression_ratio: float = 10.0
    num_resolutions: int = 6
    codeblock_size: int = 32
    progression: str = "CPRL"
    fps: int = 24
    compressor_path: Path | None = None
    lib_dir: Path | None = None


@dataclass(frozen=True)
class StreamProgress:
    """Progress of a streaming encode."""

    frame: int
    total_frames: int
    fps: float
    elapsed_secs: float


def _format_number(value: float) -> str:
    if math.isfinite(value) and value == int(value):
        return str(int(value))
    return repr(float(value))


def _parse_int(text: str) -> int:
    try:
        value = int(text.strip())
    except ValueError:
        return 0
    return value if value >= 0 else 0


def _run_probe(args: list[str]) -> str | None:
    try:
        completed = subprocess.run(args, capture_output=True)
    except OSError:
        return None
    if completed.returncode != 0:
        return None
    return completed.stdout.decode("utf-8", errors="replace").strip()


def probe_video(input_path: str | Path) -> tuple[int, int, int]:
    """Return (width, height, frame_count) of a video's first stream; zeros if unknown."""
    dims = _run_probe(
        [
            "ffprobe", "-v", "error", "-select_streams", "v:0",
            "-show_entries", "stream=width,height", "-of", "csv=p=0:s=x",
            str(input_path),
        ]
    )
    width = height = 0
    if dims is not None:
        parts = dims.split("x")
        if len(parts) == 2:
            width, height = _parse_int(parts[0]), _parse_int(parts[1])

    count = _run_probe(
        [
            "ffprobe", "-v", "error", "-select_streams", "v:0", "-count_packets",
            "-show_entries", "stream=nb_read_packets", "-of", "csv=p=0",
            str(input_path),
        ]
    )
    frame_count = _parse_int(count) if count is not None else 0
    return width, height, frame_count


def read_frame(stream: BinaryIO, size: int) -> bytes | None:
    """Read exactly size bytes; None at a clean end of stream.

    Raises EOFError if the stream ends part-way through a frame.
    """
    buf = bytearray()
    while len(buf) < size:
        chunk = stream.read(size - len(buf))
        if not chunk:
            if not buf:
                return None
            raise EOFError("partial frame")
        buf += chunk
    return bytes(buf)


def _is_set(flag: _Flag | None) -> bool:
    return flag is not None and flag.is_set()


def _stop(proc: subprocess.Popen) -> None:
    try:
        proc.kill()
    except OSError:
        pass
    try:
        proc.wait()
    except OSError:
        pass


def _compressor_command(
    compressor: Path, raw_fmt: str, output: Path, opts: StreamEncodeOptions
) -> list[str]:
    return [
        str(compressor),
        "--in-fmt", "raw",
        "-F", raw_fmt,
        "-o", str(output),
        "-r", _format_number(opts.compression_ratio),
        "-n", str(opts.num_resolutions),
        "-b", f"{opts.codeblock_size},{opts.codeblock_size}",
        "-p", opts.progression,
        "--xyz",
    ]


def stream_encode(
    opts: StreamEncodeOptions,
    cancel: _Flag | None = None,
    pause: _Flag | None = None,
    on_progress: Callable[[StreamProgress], None] | None = None,
) -> EncodeResult:
    """Pipe raw 16-bit RGB frames from ffmpeg into one compressor run per frame.

    ``cancel`` and ``pause`` are flags with an ``is_set()`` method, such as
    ``threading.Event``. Cancelling raises EncodeCancelled.
    """
    width, height, total_frames = probe_video(opts.input)
    if width == 0 or height == 0:
        raise EncodeError("Could not determine video dimensions")
    frame_size = width * height * 3 * 2

    if opts.compressor_path:
        compressor = Path(opts.compressor_path)
    else:
        found = find_compressor()
        if found is None:
            raise EncodeError("grk_compress not found")
        compressor = found[0]

    output_dir = Path(opts.output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise EncodeError(f"Failed to create output directory: {exc}") from exc

    env = None
    if opts.lib_dir is not None:
        env = {**os.environ, "LD_LIBRARY_PATH": str(opts.lib_dir)}

    ffmpeg_cmd = [
        "ffmpeg", "-y", "-i", str(opts.input),
        "-vf", f"fps={opts.fps}",
        "-pix_fmt", "rgb48be", "-f", "rawvideo", "-an", "pipe:1",
    ]
    try:
        ffmpeg = subprocess.Popen(
            ffmpeg_cmd, stdout=subprocess.PIPE, stderr=subprocess.DEVNULL
        )
    except OSError as exc:
        raise EncodeError(f"Failed to start ffmpeg: {exc}") from exc
    if ffmpeg.stdout is None:
        _stop(ffmpeg)
        raise EncodeError("Failed to capture ffmpeg stdout")

    raw_fmt = f"{width},{height},3,16,u"
    encoded = 0
    start = time.monotonic()

    try:
        while True:
            if _is_set(cancel):
                raise EncodeCancelled("Cancelled", encoded, output_dir)
            while _is_set(pause):
                if _is_set(cancel):
                    raise EncodeCancelled("Cancelled", encoded, output_dir)
                time.sleep(_PAUSE_POLL_SECONDS)

            try:
                frame = read_frame(ffmpeg.stdout, frame_size)
            except (OSError, EOFError) as exc:
                raise EncodeError(f"Read error: {exc}", encoded, output_dir) from exc
            if frame is None:
                break

            output = output_dir / f"frame_{encoded:08d}.j2c"
            cmd = _compressor_command(compressor, raw_fmt, output, opts)
            try:
                grk = subprocess.Popen(
                    cmd,
                    stdin=subprocess.PIPE,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.PIPE,
                    env=env,
                )
            except OSError as exc:
                raise EncodeError(
                    f"Failed to start compressor: {exc}", encoded, output_dir
                ) from exc
            try:
                _, stderr = grk.communicate(frame)
            except OSError as exc:
                raise EncodeError(
                    f"Pipe error frame {encoded}: {exc}", encoded, output_dir
                ) from exc
            if grk.returncode != 0:
                message = (stderr or b"").decode("utf-8", errors="replace")
                raise EncodeError(
                    f"Encode failed frame {encoded}: {message}", encoded, output_dir
                )

            encoded += 1
            if on_progress is not None and (
                encoded % _PROGRESS_EVERY == 0 or encoded == total_frames
            ):
                elapsed = time.monotonic() - start
                on_progress(
                    StreamProgress(
                        frame=encoded,
                        total_frames=total_frames,
                        fps=encoded / elapsed if elapsed > 0 else 0.0,
                        elapsed_secs=elapsed,
                    )
                )
    except BaseException:
        _stop(ffmpeg)
        raise

    ffmpeg.wait()
    logger.info("stream-encoded %d frames to %s", encoded, output_dir)
    return EncodeResult(frames_encoded=encoded, output_dir=output_dir)