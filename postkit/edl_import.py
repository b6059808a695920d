"""Import edit decision lists from CMX 3600 EDL and FCP XML files."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class EdlError(Exception):
    """Base error for EDL import."""


class EdlNotFoundError(EdlError):
    """The EDL file does not exist."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"File not found: {path}")
        self.path = path


class UnsupportedEdlFormatError(EdlError):
    """The EDL format is recognised but not supported."""

    def __init__(self, format_name: str) -> None:
        super().__init__(f"Format not supported: {format_name}")
        self.format_name = format_name


class NoClipsError(EdlError):
    """The file holds no clips."""

    def __init__(self) -> None:
        super().__init__("No clips found")


class EdlFormat(Enum):
    """Edit decision list format."""

    CMX_EDL = "CmxEdl"
    AAF = "Aaf"
    FCP_XML = "FcpXml"
    OTIO = "Otio"


@dataclass
class EditEvent:
    """One edit event; in and out points are frame numbers."""

    index: int
    reel_name: str
    src_in: int
    src_out: int
    rec_in: int
    rec_out: int
    track_type: str
    transition: str
    source_file: Path = field(default_factory=Path)


@dataclass
class EdlParseOptions:
    """Options for parsing an EDL."""

    input_file: Path
    format: EdlFormat
    fps_num: int = 24
    fps_den: int = 1


@dataclass
class EdlParseResult:
    """Events and metadata read from an EDL."""

    events: list[EditEvent]
    title: str
    fps: float
    total_frames: int


_EXTENSION_FORMATS = {
    ".edl": EdlFormat.CMX_EDL,
    ".aaf": EdlFormat.AAF,
    ".xml": EdlFormat.FCP_XML,
    ".fcpxml": EdlFormat.FCP_XML,
    ".otio": EdlFormat.OTIO,
}
_UNSIGNED_RE = re.compile(r"\+?[0-9]+", re.ASCII)


def _parse_unsigned(text: str) -> int | None:
    return int(text) if _UNSIGNED_RE.fullmatch(text) else None


def detect_edl_format(path: str | Path) -> EdlFormat:
    """Detect the EDL format from the extension, defaulting to CMX EDL."""
    return _EXTENSION_FORMATS.get(Path(path).suffix.lower(), EdlFormat.CMX_EDL)


def timecode_to_frames(tc: str, fps: float) -> int:
    """Convert an HH:MM:SS:FF timecode to frames at the given rate."""
    parts = tc.split(":")
    if len(parts) != 4:
        return 0
    hours, minutes, seconds, frames = (_parse_unsigned(part) or 0 for part in parts)
    whole = (hours * 3600 + minutes * 60 + seconds) * fps
    return max(0, int(whole)) + frames


def _is_timecode(text: str) -> bool:
    return len(text.encode("utf-8")) == 11 and len(text) > 2 and text[2] == ":"


def parse_cmx_event_line(line: str, fps: float) -> EditEvent | None:
    """Parse one CMX 3600 event line, or return None if it is not one."""
    parts = line.split()
    if len(parts) < 8:
        return None
    index = _parse_unsigned(parts[0])
    if index is None:
        return None
    if not all(_is_timecode(part) for part in parts[4:8]):
        return None
    return EditEvent(
        index=index,
        reel_name=parts[1],
        track_type=parts[2],
        transition=parts[3],
        src_in=timecode_to_frames(parts[4], fps),
        src_out=timecode_to_frames(parts[5], fps),
        rec_in=timecode_to_frames(parts[6], fps),
        rec_out=timecode_to_frames(parts[7], fps),
    )


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise EdlError(f"Cannot open file: {exc}") from exc


def _parse_cmx_edl(path: Path, fps: float) -> EdlParseResult:
    lines = _read(path).splitlines()
    title = ""
    if lines:
        pos = lines[0].find("TITLE:")
        if pos >= 0:
            title = lines[0][pos + len("TITLE:"):].strip()

    events = [
        event
        for event in (parse_cmx_event_line(line, fps) for line in lines[1:])
        if event is not None
    ]
    total_frames = events[-1].rec_out if events else 0
    return EdlParseResult(events=events, title=title, fps=fps, total_frames=total_frames)


def _extract_tag_value(xml: str, tag: str) -> str | None:
    open_tag = f"<{tag}>"
    start = xml.find(open_tag)
    if start < 0:
        return None
    start += len(open_tag)
    end = xml.find(f"</{tag}>", start)
    if end < 0:
        return None
    return xml[start:end].strip()


def _tag_number(block: str, tag: str) -> int:
    value = _extract_tag_value(block, tag)
    return (_parse_unsigned(value) if value is not None else None) or 0


def _parse_fcp_xml(path: Path, fps: float) -> EdlParseResult:
    content = _read(path)
    title = _extract_tag_value(content, "name") or ""

    events: list[EditEvent] = []
    rec_pos = 0
    for clip_block in content.split("<clip")[1:]:
        end_pos = clip_block.find("</clip>")
        if end_pos < 0:
            continue
        block = clip_block[:end_pos]
        start = _tag_number(block, "start")
        end = _tag_number(block, "end")
        duration = max(0, end - start)
        events.append(
            EditEvent(
                index=len(events) + 1,
                reel_name=_extract_tag_value(block, "name") or "",
                src_in=start,
                src_out=end,
                rec_in=rec_pos,
                rec_out=rec_pos + duration,
                track_type="V",
                transition="Cut",
            )
        )
        rec_pos += duration

    if not events:
        raise NoClipsError()
    return EdlParseResult(events=events, title=title, fps=fps, total_frames=rec_pos)


def parse_edl(opts: EdlParseOptions) -> EdlParseResult:
    """Parse an EDL file into a list of edit events."""
    path = Path(opts.input_file)
    if not path.exists():
        raise EdlNotFoundError(path)
    if opts.fps_den == 0:
        raise EdlError("Frame rate denominator must not be zero")
    fps = opts.fps_num / opts.fps_den

    if opts.format is EdlFormat.CMX_EDL:
        return _parse_cmx_edl(path, fps)
    if opts.format is EdlFormat.FCP_XML:
        return _parse_fcp_xml(path, fps)
    if opts.format is EdlFormat.AAF:
        raise UnsupportedEdlFormatError("AAF")
    raise UnsupportedEdlFormatError("OTIO")