# postkit

Building blocks for digital cinema (DCP) and IMF mastering work, used from
Python code:

- **Accessibility checks** (`postkit.accessibility`): scan the `CPL*.xml` /
  `cpl*.xml` files of a package directory for audio description,
  hearing-impaired, sign language, caption and commentary markers, and report
  the tracks a standard (`AccessibilityStandard.CVAA`, `EAA`, `AODA`, `OFCOM`)
  requires or recommends.
- **Timelines** (`postkit.conform`, `postkit.edl_import`): parse CMX 3600 EDLs
  and simple FCP XML clip lists, convert timecodes to frame counts, find reels
  with no matching file in a media directory and write a
  `conform_manifest.json`.
- **Version register** (`postkit.dashboard`): an SQLite register of OV/VF
  versions by territory and status, with a CSV territory × title matrix.
- **Certificates and trust** (`postkit.certificate`, `postkit.trust`):
  generate root → intermediate → signer chains, read certificate details,
  validate chains and keep a store of trusted device certificates.
- **KDMs** (`postkit.kdm`): write Key Delivery Message XML for a CPL and a
  recipient certificate, with a relative validity end such as `"7 days"` or
  `"2w"`.
- **Colour** (`postkit.colour`, `postkit.burnin`): an in-memory Rec.709 →
  DCI X'Y'Z' transform of rgb48be pixel data, and ffmpeg-driven colour
  conversion and subtitle/text burn-in.
- **Encoding** (`postkit.media_detect`, `postkit.encode`,
  `postkit.stream_encode`): classify inputs, find frame sequences, and encode
  image sequences or a video stream to JPEG 2000 through `grk_compress`.

## Requirements

Python 3.10 or later, with `cryptography`, `platformdirs` and `numpy`.
`postkit.colour.convert_colour` and `postkit.burnin` need `ffmpeg` on `PATH`;
`postkit.stream_encode` needs `ffmpeg` and `ffprobe`; the encoders need
`grk_compress` (found on `PATH`, under `$HOME/bin/grok/bin`, or given
explicitly). Everything else runs in-process.

## Examples

Timecodes and EDLs:

```python
from pathlib import Path
from postkit.conform import tc_to_frames, parse_timeline, find_missing_reels

tc_to_frames("01:00:00:00", 24)   # 86400

timeline = parse_timeline(Path("cut.edl"))
print(timeline.title, len(timeline.events))
print(find_missing_reels(timeline, Path("media")))
```

```python
from pathlib import Path
from postkit.edl_import import EdlFormat, EdlParseOptions, parse_edl

result = parse_edl(EdlParseOptions(Path("cut.fcpxml"), EdlFormat.FCP_XML))
print(result.title, result.total_frames)
```

Accessibility:

```python
from postkit.accessibility import AccessibilityStandard, check_accessibility

result = check_accessibility("MyFeature_DCP", AccessibilityStandard.CVAA)
print(result.compliant, result.tracks_missing)
```

A certificate chain:

```python
from postkit.certificate import generate_chain, read_certificate
from postkit.trust import validate_chain

chain = generate_chain("Example Films", "certs")   # signer, intermediate, root
validate_chain(chain)
print(read_certificate(chain[0]).subject_cn)      # "Example Films Signer"
```

A KDM:

```python
from pathlib import Path
from postkit.kdm import KdmConfig, generate_kdm

generate_kdm(KdmConfig(
    cpl_id="00000000-0000-0000-0000-000000000000",
    content_title="Example Feature",
    recipient_cert_file=Path("certs/signer.pem"),
    output_file=Path("out/kdm.xml"),
    valid_to="7 days",
    formulation="DCI Any",
))
```

The version register (every function takes an optional `db_path`; without
it the database lives in the user's configuration directory):

```python
from postkit.dashboard import VersionEntry, init_database, register_version, list_territories

init_database("versions.db")
register_version(VersionEntry(uuid="ov-1", title="Feature", territory="GB",
                              language="en", status="draft"), db_path="versions.db")
print(list_territories("versions.db")[0].name)   # "United Kingdom"
```

Failures are raised as exceptions from the module concerned, for example
`CertificateError`, `ChainError`, `EdlError`, `ConformError`,
`DashboardError`, `KdmError`, `EncodeError` (with `EncodeCancelled` for a
cancelled stream encode), `BurninError` and `ColourConversionError`.

## What it does not do

- It has no command-line program and no web server; the version register is
  a library over SQLite only.
- It does not add or read annotations or revision markers in CPL files.
- Timelines other than CMX 3600 EDL and simple FCP XML (AAF, OTIO) are not
  parsed; `postkit.conform` reads every timeline with its EDL parser.
- KDMs are not signed, and the content key is written as a random hex value,
  not encrypted to the recipient.

## Tests

The test suite uses pytest and is installed with the `test` extra.