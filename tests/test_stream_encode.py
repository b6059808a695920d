import io
import subprocess
import threading
from pathlib import Path
from unittest import mock

import pytest

from postkit.encode import EncodeError
from postkit.stream_encode import (
    EncodeCancelled,
    StreamEncodeOptions,
    StreamProgress,
    probe_video,
    read_frame,
    stream_encode,
)


class _FakeProcess:
    def __init__(self, stdout=b"", returncode=0, stderr=b""):
        self.stdout = io.BytesIO(stdout)
        self.returncode = returncode
        self._stderr = stderr
        self.inputs = []
        self.killed = False

    def communicate(self, input=None):
        self.inputs.append(input)
        return b"", self._stderr

    def wait(self, timeout=None):
        return self.returncode

    def kill(self):
        self.killed = True


def _probe(width_height=b"2x1\n", count=b"2\n"):
    outputs = iter([width_height, count])

    def run(args, **kwargs):
        return subprocess.CompletedProcess(args, 0, stdout=next(outputs), stderr=b"")

    return run


class _Launcher:
    def __init__(self, ffmpeg_output, compressor_code=0, compressor_stderr=b""):
        self.ffmpeg = _FakeProcess(stdout=ffmpeg_output)
        self.compressors = []
        self.commands = []
        self._code = compressor_code
        self._stderr = compressor_stderr

    def __call__(self, cmd, **kwargs):
        self.commands.append(cmd)
        if cmd[0] == "ffmpeg":
            return self.ffmpeg
        proc = _FakeProcess(returncode=self._code, stderr=self._stderr)
        self.compressors.append(proc)
        return proc


def _options(tmp_path):
    return StreamEncodeOptions(
        input=tmp_path / "in.mov",
        output_dir=tmp_path / "out",
        compressor_path=Path("grk_compress"),
    )


def test_read_frame_whole_frames_then_none():
    stream = io.BytesIO(b"abcdef")
    assert read_frame(stream, 3) == b"abc"
    assert read_frame(stream, 3) == b"def"
    assert read_frame(stream, 3) is None


def test_read_frame_partial_raises():
    with pytest.raises(EOFError):
        read_frame(io.BytesIO(b"ab"), 3)


def test_probe_video_parses_output():
    with mock.patch.object(subprocess, "run", side_effect=_probe(b"1920x1080\n", b"48\n")):
        assert probe_video("clip.mov") == (1920, 1080, 48)


def test_probe_video_missing_tool_gives_zeros():
    with mock.patch.object(subprocess, "run", side_effect=FileNotFoundError("ffprobe")):
        assert probe_video("clip.mov") == (0, 0, 0)


def test_probe_video_failure_gives_zeros():
    def run(args, **kwargs):
        return subprocess.CompletedProcess(args, 1, stdout=b"", stderr=b"bad")

    with mock.patch.object(subprocess, "run", side_effect=run):
        assert probe_video("clip.mov") == (0, 0, 0)


def test_stream_encode_without_dimensions_raises(tmp_path):
    with mock.patch.object(subprocess, "run", side_effect=FileNotFoundError("ffprobe")):
        with pytest.raises(EncodeError, match="Could not determine video dimensions"):
            stream_encode(_options(tmp_path))


def test_stream_encode_pipes_each_frame(tmp_path):
    frames = bytes(range(12)) + bytes(range(12, 24))
    launcher = _Launcher(frames)
    progress = []
    with mock.patch.object(subprocess, "run", side_effect=_probe()), \
            mock.patch.object(subprocess, "Popen", side_effect=launcher):
        result = stream_encode(_options(tmp_path), on_progress=progress.append)

    assert result.frames_encoded == 2
    assert result.output_dir == tmp_path / "out"
    assert [p.inputs[0] for p in launcher.compressors] == [frames[:12], frames[12:]]
    compressor_cmd = launcher.commands[1]
    assert compressor_cmd[compressor_cmd.index("-F") + 1] == "2,1,3,16,u"
    assert "--xyz" in compressor_cmd
    assert [p.frame for p in progress] == [2]
    assert all(isinstance(p, StreamProgress) and p.total_frames == 2 for p in progress)
    assert not launcher.ffmpeg.killed


def test_stream_encode_compressor_failure(tmp_path):
    launcher = _Launcher(bytes(24), compressor_code=1, compressor_stderr=b"boom")
    with mock.patch.object(subprocess, "run", side_effect=_probe()), \
            mock.patch.object(subprocess, "Popen", side_effect=launcher):
        with pytest.raises(EncodeError, match="boom") as info:
            stream_encode(_options(tmp_path))
    assert info.value.frames_encoded == 0
    assert launcher.ffmpeg.killed


def test_stream_encode_partial_frame(tmp_path):
    launcher = _Launcher(bytes(13))
    with mock.patch.object(subprocess, "run", side_effect=_probe()), \
            mock.patch.object(subprocess, "Popen", side_effect=launcher):
        with pytest.raises(EncodeError, match="Read error") as info:
            stream_encode(_options(tmp_path))
    assert info.value.frames_encoded == 1


def test_stream_encode_cancelled(tmp_path):
    cancel = threading.Event()
    cancel.set()
    launcher = _Launcher(bytes(24))
    with mock.patch.object(subprocess, "run", side_effect=_probe()), \
            mock.patch.object(subprocess, "Popen", side_effect=launcher):
        with pytest.raises(EncodeCancelled) as info:
            stream_encode(_options(tmp_path), cancel=cancel)
    assert info.value.frames_encoded == 0
    assert launcher.compressors == []
    assert launcher.ffmpeg.killed