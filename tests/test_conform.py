import json
from pathlib import Path

import pytest

from postkit.conform import (
    ConformError,
    ConformOptions,
    EditEvent,
    Timeline,
    TimelineFormat,
    conform,
    detect_timeline_format,
    find_missing_reels,
    parse_edl,
    parse_timeline,
    tc_to_frames,
)

EDL_TEXT = (
    "TITLE: Test Edit\nFCM: NON-DROP FRAME\n\n"
    "001  REEL001  V  C        01:00:00:00 01:00:05:00 01:00:00:00 01:00:05:00\n"
    "002  REEL002  V  C        01:00:05:00 01:00:10:00 01:00:05:00 01:00:10:00\n"
)


def test_parse_edl(tmp_path):
    edl_path = tmp_path / "test.edl"
    edl_path.write_text(EDL_TEXT)
    tl = parse_timeline(edl_path)
    assert tl.title == "Test Edit"
    assert len(tl.events) == 2
    assert tl.events[0].reel_name == "REEL001"
    assert tl.events[1].event_number == 2
    assert tl.format is TimelineFormat.EDL_CMX3600
    assert tl.frame_rate == 24.0


def test_parse_edl_event_fields(tmp_path):
    edl_path = tmp_path / "test.edl"
    edl_path.write_text(EDL_TEXT)
    event = parse_edl(edl_path).events[1]
    assert event.track_type == "V"
    assert event.transition == "C"
    assert event.source_in == 86520
    assert event.record_out == 86640


def test_tc_to_frames():
    assert tc_to_frames("01:00:00:00", 24) == 86400
    assert tc_to_frames("00:00:01:00", 24) == 24
    assert tc_to_frames("00:00:00:12", 24) == 12


def test_tc_to_frames_edge_cases():
    assert tc_to_frames("00:00:01;05", 24) == 29
    assert tc_to_frames("00:00:01:00", 0) == 24
    assert tc_to_frames("00:01:00", 24) == 0


def test_detect_format():
    assert detect_timeline_format(Path("test.edl")) is TimelineFormat.EDL_CMX3600
    assert detect_timeline_format(Path("test.aaf")) is TimelineFormat.AAF
    assert detect_timeline_format(Path("test.FCPXML")) is TimelineFormat.XML_FCPX
    assert detect_timeline_format(Path("test.otio")) is TimelineFormat.OTIO
    assert detect_timeline_format(Path("test.txt")) is TimelineFormat.UNKNOWN


def test_find_missing_reels(tmp_path):
    (tmp_path / "REEL001.mxf").write_text("")
    tl = Timeline(events=[EditEvent(reel_name="REEL001"), EditEvent(reel_name="REEL002")])
    assert find_missing_reels(tl, tmp_path) == ["REEL002"]


def test_find_missing_reels_skips_black_and_duplicates(tmp_path):
    tl = Timeline(
        events=[
            EditEvent(reel_name="BL"),
            EditEvent(reel_name="AX"),
            EditEvent(reel_name="R9"),
            EditEvent(reel_name="R9"),
        ]
    )
    assert find_missing_reels(tl, tmp_path) == ["R9"]


def test_drop_frame_and_comments(tmp_path):
    edl_path = tmp_path / "df.edl"
    edl_path.write_text(
        "TITLE: DF\nFCM: DROP FRAME\n"
        "* FROM CLIP NAME: shot1\n"
        "001  A001  V  C  00:00:01:00 00:00:02:00 00:00:00:00 00:00:01:00\n"
        "002  A002  V  C  00:00:02:00 00:00:03:00 00:00:01:00 00:00:02:00\n"
    )
    tl = parse_edl(edl_path)
    assert tl.frame_rate == 29.97
    assert tl.events[0].source_in == 29
    assert tl.events[0].comment == "FROM CLIP NAME: shot1"
    assert tl.events[1].comment == ""


def test_unreadable_file_gives_empty_timeline(tmp_path):
    tl = parse_edl(tmp_path / "missing.edl")
    assert tl.events == []
    assert tl.format is TimelineFormat.UNKNOWN


def test_to_dict():
    tl = Timeline(title="T", format=TimelineFormat.EDL_CMX3600, events=[EditEvent(reel_name="R")])
    data = tl.to_dict()
    assert data["format"] == "EdlCmx3600"
    assert data["frame_rate"] == 24.0
    assert data["events"][0]["reel_name"] == "R"
    assert list(data["events"][0]) == [
        "event_number",
        "reel_name",
        "track_type",
        "source_in",
        "source_out",
        "record_in",
        "record_out",
        "transition",
        "comment",
    ]


def test_conform_writes_manifest(tmp_path):
    edl_path = tmp_path / "test.edl"
    edl_path.write_text(EDL_TEXT)
    media = tmp_path / "media"
    media.mkdir()
    (media / "REEL001.mxf").write_text("")
    out = tmp_path / "out" / "nested"
    manifest = conform(ConformOptions(timeline_file=edl_path, media_dir=media, output_dir=out))
    assert manifest == out / "conform_manifest.json"
    data = json.loads(manifest.read_text())
    assert data["title"] == "Test Edit"
    assert len(data["events"]) == 2


def test_conform_without_events_raises(tmp_path):
    edl_path = tmp_path / "empty.edl"
    edl_path.write_text("TITLE: Nothing\n")
    with pytest.raises(ConformError, match="No events"):
        conform(ConformOptions(timeline_file=edl_path, output_dir=tmp_path / "out"))