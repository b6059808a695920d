from postkit.accessibility import (
    AccessibilityStandard,
    AccessibilityTrack,
    Severity,
    check_accessibility,
    check_accessibility_multi,
    detect_accessibility_tracks,
    recommended_tracks,
    required_tracks,
)


def test_empty_package_fails_cvaa(tmp_path):
    result = check_accessibility(tmp_path, AccessibilityStandard.CVAA)
    assert not result.compliant
    assert result.errors == 2
    assert len(result.tracks_missing) == 2


def test_detect_tracks_from_cpl():
    content = """<MainSoundSequence>
            <MCATagSymbol>AudioDescription</MCATagSymbol>
            <MCATagName>Visually Impaired</MCATagName>
        </MainSoundSequence>
        <MainSubtitle>ClosedCaption CEA-608</MainSubtitle>"""
    tracks = detect_accessibility_tracks(content)
    assert AccessibilityTrack.AUDIO_DESCRIPTION in tracks
    assert AccessibilityTrack.CLOSED_CAPTIONS in tracks


def test_required_tracks_vary_by_standard():
    assert AccessibilityTrack.CLOSED_CAPTIONS in required_tracks(AccessibilityStandard.CVAA)
    assert AccessibilityTrack.SIGN_LANGUAGE in required_tracks(AccessibilityStandard.OFCOM)


def test_ofcom_has_no_recommended_tracks():
    assert recommended_tracks(AccessibilityStandard.OFCOM) == []


def test_compliant_package_gets_recommendation_warning(tmp_path):
    (tmp_path / "CPL_feature.xml").write_text(
        "<Track>AudioDescription</Track><Track>ClosedCaption</Track>"
    )
    result = check_accessibility(tmp_path, AccessibilityStandard.CVAA)
    assert result.compliant
    assert result.errors == 0
    assert result.warnings == 1
    warning = result.findings[0]
    assert warning.severity is Severity.WARNING
    assert warning.track_type is AccessibilityTrack.HEARING_IMPAIRED
    assert warning.rule_id == "CVAA-REC"


def test_non_cpl_files_are_ignored(tmp_path):
    (tmp_path / "PKL.xml").write_text("AudioDescription ClosedCaption")
    (tmp_path / "cpl_notes.txt").write_text("AudioDescription ClosedCaption")
    result = check_accessibility(tmp_path, AccessibilityStandard.CVAA)
    assert result.tracks_present == []
    assert not result.compliant


def test_missing_track_rule_ids(tmp_path):
    result = check_accessibility(tmp_path, AccessibilityStandard.OFCOM)
    assert [f.rule_id for f in result.findings] == [
        "OFCOM-AD-1",
        "OFCOM-HI-1",
        "OFCOM-SL-1",
    ]
    assert all(f.severity is Severity.ERROR for f in result.findings)


def test_multi_returns_one_result_per_standard(tmp_path):
    standards = [AccessibilityStandard.EAA, AccessibilityStandard.AODA]
    results = check_accessibility_multi(tmp_path, standards)
    assert [r.standard for r in results] == standards
    assert all(not r.compliant for r in results)