import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from postkit.burnin import BurninError, BurninOptions, build_burnin_args, burnin


def _filter(args):
    return args[args.index("-vf") + 1]


def test_subtitle_file_takes_precedence():
    opts = BurninOptions(
        input=Path("in.mov"),
        output=Path("out.mov"),
        subtitle_file=Path("subs.srt"),
        text="ignored",
    )
    args = build_burnin_args(opts)
    assert _filter(args) == "subtitles=subs.srt"
    assert args[:2] == ["-i", "in.mov"]
    assert args[-2:] == ["-y", "out.mov"]


def test_text_defaults():
    args = build_burnin_args(BurninOptions(Path("a.mov"), Path("b.mov"), text="hello"))
    vf = _filter(args)
    assert vf.startswith("drawtext=text='hello'")
    assert "fontsize=24" in vf
    assert "fontcolor=white" in vf
    assert vf.endswith("y=h-th-10")


def test_text_custom_style_and_position():
    opts = BurninOptions(
        Path("a.mov"),
        Path("b.mov"),
        text="slate",
        font_size=48,
        font_colour="FF0000",
        position="top",
    )
    vf = _filter(build_burnin_args(opts))
    assert "fontsize=48" in vf
    assert "fontcolor=FF0000" in vf
    assert vf.endswith("y=10")


def test_center_position():
    opts = BurninOptions(Path("a.mov"), Path("b.mov"), text="x", position="center")
    assert _filter(build_burnin_args(opts)).endswith("y=(h-text_h)/2")


def test_no_overlay_has_no_filter():
    args = build_burnin_args(BurninOptions(Path("a.mov"), Path("b.mov")))
    assert "-vf" not in args


def test_burnin_raises_on_ffmpeg_failure():
    failed = subprocess.CompletedProcess(args=[], returncode=1, stdout=b"", stderr=b"boom")
    with patch("postkit.burnin.subprocess.run", return_value=failed) as run:
        with pytest.raises(BurninError, match="boom"):
            burnin(BurninOptions(Path("a.mov"), Path("b.mov"), text="x"))
    assert run.call_args.args[0][0] == "ffmpeg"


def test_burnin_succeeds_on_zero_exit():
    ok = subprocess.CompletedProcess(args=[], returncode=0, stdout=b"", stderr=b"")
    with patch("postkit.burnin.subprocess.run", return_value=ok) as run:
        result = burnin(BurninOptions(Path("a.mov"), Path("b.mov")))
    assert result is None
    assert run.call_args.args[0][-1] == "b.mov"