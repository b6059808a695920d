"""Timeline parsing (CMX 3600 EDL) and conform of source reels."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class ConformError(Exception):
    """Raised when a conform cannot be carried out."""


class TimelineFormat(Enum):
    """Timeline edit decision format."""

    EDL_CMX3600 = "EdlCmx3600"
    AAF = "Aaf"
    XML_FCP = "XmlFcp"
    XML_FCPX = "XmlFcpx"
    XML_RESOLVE = "XmlResolve"
    OTIO = "Otio"
    UNKNOWN = "Unknown"


@dataclass
class EditEvent:
    """A single edit event in a timeline; timecodes are frame numbers."""

    event_number: int = 0
    reel_name: str = ""
    track_type: str = ""
    source_in: int = 0
    source_out: int = 0
    record_in: int = 0
    record_out: int = 0
    transition: str = ""
    comment: str = ""


@dataclass
class Timeline:
    """A parsed timeline."""

    title: str = ""
    frame_rate: float = 24.0
    format: TimelineFormat = TimelineFormat.UNKNOWN
    events: list[EditEvent] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Plain-data form of the timeline, suitable for JSON."""
        return {
            "title": self.title,
            "frame_rate": float(self.frame_rate),
            "format": self.format.value,
            "events": [asdict(event) for event in self.events],
        }


@dataclass
class ConformOptions:
    """Options for a conform run."""

    timeline_file: Path = field(default_factory=Path)
    media_dir: Path = field(default_factory=Path)
    output_dir: Path = field(default_factory=Path)
    auto_detect_format: bool = True
    force_format: TimelineFormat = TimelineFormat.UNKNOWN
    frame_rate: float = 24.0


_TC = r"(\d{2}:\d{2}:\d{2}[:;]\d{2})"
_EVENT_RE = re.compile(
    r"^\s*(\d+)\s+(\S+)\s+(\S+)\s+(\S+)\s+" + r"\s+".join([_TC] * 4)
)
_UNSIGNED_RE = re.compile(r"\+?[0-9]+", re.ASCII)

_EXTENSION_FORMATS = {
    ".edl": TimelineFormat.EDL_CMX3600,
    ".aaf": TimelineFormat.AAF,
    ".otio": TimelineFormat.OTIO,
    ".xml": TimelineFormat.XML_FCPX,
    ".fcpxml": TimelineFormat.XML_FCPX,
}


def _parse_unsigned(text: str) -> int:
    return int(text) if _UNSIGNED_RE.fullmatch(text) else 0


def tc_to_frames(tc: str, fps: int) -> int:
    """Convert an HH:MM:SS:FF (or ;FF) timecode to a frame count."""
    fps = fps or 24
    parts = tc.replace(";", ":").split(":")
    if len(parts) != 4:
        return 0
    hours, minutes, seconds, frames = (_parse_unsigned(part) for part in parts)
    return hours * 3600 * fps + minutes * 60 * fps + seconds * fps + frames


def detect_timeline_format(file: str | Path) -> TimelineFormat:
    """Detect the timeline format from the file extension."""
    return _EXTENSION_FORMATS.get(Path(file).suffix.lower(), TimelineFormat.UNKNOWN)


def parse_edl(file: str | Path) -> Timeline:
    """Parse a CMX 3600 EDL file; an unreadable file gives an empty timeline."""
    try:
        content = Path(file).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Failed to read EDL file: %s", exc)
        return Timeline()

    timeline = Timeline(format=TimelineFormat.EDL_CMX3600)
    last_comment = ""

    for line in content.splitlines():
        trimmed = line.strip()

        if trimmed.startswith("TITLE:"):
            timeline.title = trimmed[len("TITLE:"):].strip()
            continue

        if trimmed.startswith("FCM:"):
            if "DROP" in trimmed and "NON" not in trimmed:
                timeline.frame_rate = 29.97
            continue

        if trimmed.startswith(("*", ";")):
            last_comment = trimmed[1:].strip()
            continue

        match = _EVENT_RE.match(trimmed)
        if match is None:
            continue
        fps = int(timeline.frame_rate)
        timeline.events.append(
            EditEvent(
                event_number=_parse_unsigned(match[1]),
                reel_name=match[2],
                track_type=match[3],
                source_in=tc_to_frames(match[5], fps),
                source_out=tc_to_frames(match[6], fps),
                record_in=tc_to_frames(match[7], fps),
                record_out=tc_to_frames(match[8], fps),
                transition=match[4],
                comment=last_comment,
            )
        )
        last_comment = ""

    return timeline


def parse_timeline(file: str | Path) -> Timeline:
    """Parse a timeline file; formats other than EDL fall back to the EDL parser."""
    timeline_format = detect_timeline_format(file)
    if timeline_format is not TimelineFormat.EDL_CMX3600:
        logger.warning(
            "Timeline format %s not supported, trying EDL parser",
            timeline_format.value,
        )
    return parse_edl(file)


def find_missing_reels(timeline: Timeline, media_dir: str | Path) -> list[str]:
    """Reel names referenced by the timeline with no matching file in media_dir."""
    media_dir = Path(media_dir)
    try:
        names = [entry.name for entry in media_dir.iterdir()]
    except OSError:
        names = []

    missing: list[str] = []
    checked: set[str] = set()
    for event in timeline.events:
        reel = event.reel_name
        if reel in ("BL", "AX") or reel in checked:
            continue
        checked.add(reel)
        if not any(reel in name for name in names):
            missing.append(reel)
    return missing


def conform(opts: ConformOptions) -> Path:
    """Conform a timeline into the output directory and return the manifest path."""
    timeline = parse_timeline(opts.timeline_file)
    if not timeline.events:
        raise ConformError("No events found in timeline")

    output_dir = Path(opts.output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConformError(f"Failed to create output directory: {exc}") from exc

    for reel in find_missing_reels(timeline, opts.media_dir):
        logger.warning("Missing reel: %s", reel)

    manifest_path = output_dir / "conform_manifest.json"
    try:
        manifest_path.write_text(
            json.dumps(timeline.to_dict(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
    except OSError as exc:
        raise ConformError(f"Failed to write manifest: {exc}") from exc

    logger.info("Conformed %d events to %s", len(timeline.events), output_dir)
    return manifest_path