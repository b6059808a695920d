"""Accessibility compliance checks for DCP and IMP packages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable


class AccessibilityStandard(Enum):
    """Accessibility standard to check against."""

    CVAA = "Cvaa"
    EAA = "Eaa"
    AODA = "Aoda"
    OFCOM = "Ofcom"

    @property
    def prefix(self) -> str:
        """Rule-id prefix used in findings."""
        return self.name


class AccessibilityTrack(Enum):
    """Accessibility track type."""

    AUDIO_DESCRIPTION = "AudioDescription"
    HEARING_IMPAIRED = "HearingImpaired"
    SIGN_LANGUAGE = "SignLanguage"
    OPEN_CAPTIONS = "OpenCaptions"
    CLOSED_CAPTIONS = "ClosedCaptions"
    COMMENTARY = "Commentary"


class Severity(Enum):
    """Severity of an accessibility finding."""

    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"


@dataclass
class AccessibilityFinding:
    """A single compliance finding."""

    severity: Severity
    track_type: AccessibilityTrack
    rule_id: str
    description: str
    recommendation: str


@dataclass
class AccessibilityResult:
    """Result of an accessibility compliance check."""

    standard: AccessibilityStandard
    compliant: bool = True
    findings: list[AccessibilityFinding] = field(default_factory=list)
    errors: int = 0
    warnings: int = 0
    tracks_present: list[AccessibilityTrack] = field(default_factory=list)
    tracks_missing: list[AccessibilityTrack] = field(default_factory=list)


_DETECTION_MARKERS: tuple[tuple[AccessibilityTrack, tuple[str, ...]], ...] = (
    (
        AccessibilityTrack.AUDIO_DESCRIPTION,
        ("audiodescription", "visually impaired", "visually-impaired", "vi-narration"),
    ),
    (
        AccessibilityTrack.HEARING_IMPAIRED,
        ("hearingimpaired", "hearing impaired", "sdh", "hearing-impaired"),
    ),
    (
        AccessibilityTrack.SIGN_LANGUAGE,
        ("signlanguage", "sign language", "sign-language"),
    ),
    (
        AccessibilityTrack.CLOSED_CAPTIONS,
        ("closedcaption", "closed caption", "cea-608", "cea-708", "cc1"),
    ),
    (
        AccessibilityTrack.OPEN_CAPTIONS,
        ("opencaption", "open caption", "burned-in"),
    ),
    (AccessibilityTrack.COMMENTARY, ("commentary", "director")),
)

_REQUIRED: dict[AccessibilityStandard, tuple[AccessibilityTrack, ...]] = {
    AccessibilityStandard.CVAA: (
        AccessibilityTrack.CLOSED_CAPTIONS,
        AccessibilityTrack.AUDIO_DESCRIPTION,
    ),
    AccessibilityStandard.EAA: (
        AccessibilityTrack.AUDIO_DESCRIPTION,
        AccessibilityTrack.HEARING_IMPAIRED,
    ),
    AccessibilityStandard.AODA: (
        AccessibilityTrack.CLOSED_CAPTIONS,
        AccessibilityTrack.AUDIO_DESCRIPTION,
    ),
    AccessibilityStandard.OFCOM: (
        AccessibilityTrack.AUDIO_DESCRIPTION,
        AccessibilityTrack.HEARING_IMPAIRED,
        AccessibilityTrack.SIGN_LANGUAGE,
    ),
}

_RECOMMENDED: dict[AccessibilityStandard, tuple[AccessibilityTrack, ...]] = {
    AccessibilityStandard.CVAA: (AccessibilityTrack.HEARING_IMPAIRED,),
    AccessibilityStandard.EAA: (AccessibilityTrack.SIGN_LANGUAGE,),
    AccessibilityStandard.AODA: (AccessibilityTrack.HEARING_IMPAIRED,),
    AccessibilityStandard.OFCOM: (),
}

_REQUIREMENT_TEXT: dict[AccessibilityTrack, tuple[str, str, str]] = {
    AccessibilityTrack.CLOSED_CAPTIONS: (
        "CC-1",
        "Closed captions track required",
        "Add CEA-608/708 or SMPTE-TT closed caption track",
    ),
    AccessibilityTrack.AUDIO_DESCRIPTION: (
        "AD-1",
        "Audio description track required",
        "Add an audio description (VI narration) track",
    ),
    AccessibilityTrack.HEARING_IMPAIRED: (
        "HI-1",
        "Hearing-impaired subtitle track required",
        "Add SDH/HI subtitle track",
    ),
    AccessibilityTrack.SIGN_LANGUAGE: (
        "SL-1",
        "Sign language track required",
        "Add sign language video overlay track",
    ),
}


def required_tracks(standard: AccessibilityStandard) -> list[AccessibilityTrack]:
    """Tracks that the standard requires."""
    return list(_REQUIRED[standard])


def recommended_tracks(standard: AccessibilityStandard) -> list[AccessibilityTrack]:
    """Tracks that the standard recommends but does not require."""
    return list(_RECOMMENDED[standard])


def detect_accessibility_tracks(cpl_content: str) -> list[AccessibilityTrack]:
    """Detect accessibility tracks mentioned in CPL text."""
    lower = cpl_content.lower()
    return [
        track
        for track, markers in _DETECTION_MARKERS
        if any(marker in lower for marker in markers)
    ]


def _read_cpls(directory: Path) -> str:
    if not directory.is_dir():
        return ""
    parts = []
    for path in sorted(directory.iterdir()):
        name = path.name
        if not path.is_file():
            continue
        if not (name.startswith(("CPL", "cpl")) and name.endswith(".xml")):
            continue
        try:
            parts.append(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError):
            continue
    return "".join(parts)


def _requirement_finding(
    standard: AccessibilityStandard, track: AccessibilityTrack
) -> AccessibilityFinding:
    prefix = standard.prefix
    if track in _REQUIREMENT_TEXT:
        suffix, description, recommendation = _REQUIREMENT_TEXT[track]
        rule_id = f"{prefix}-{suffix}"
    else:
        rule_id = f"{prefix}-GEN-1"
        description = f"{track.value} track required"
        recommendation = f"Add {track.value} track to package"
    return AccessibilityFinding(
        severity=Severity.ERROR,
        track_type=track,
        rule_id=rule_id,
        description=description,
        recommendation=recommendation,
    )


def check_accessibility(
    package_dir: str | Path, standard: AccessibilityStandard
) -> AccessibilityResult:
    """Check a package directory's CPLs for the tracks a standard requires."""
    result = AccessibilityResult(standard=standard)
    result.tracks_present = detect_accessibility_tracks(_read_cpls(Path(package_dir)))

    for track in required_tracks(standard):
        if track not in result.tracks_present:
            result.tracks_missing.append(track)
            result.findings.append(_requirement_finding(standard, track))
            result.errors += 1
            result.compliant = False

    for track in recommended_tracks(standard):
        if track in result.tracks_present or track in result.tracks_missing:
            continue
        result.findings.append(
            AccessibilityFinding(
                severity=Severity.WARNING,
                track_type=track,
                rule_id=f"{standard.prefix}-REC",
                description=f"{track.value} track recommended but not found",
                recommendation=(
                    f"Consider adding {track.value} track for broader accessibility"
                ),
            )
        )
        result.warnings += 1

    return result


def check_accessibility_multi(
    package_dir: str | Path, standards: Iterable[AccessibilityStandard]
) -> list[AccessibilityResult]:
    """Check a package against several standards."""
    return [check_accessibility(package_dir, standard) for standard in standards]