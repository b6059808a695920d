"""Generate SMPTE 430-1 Key Delivery Messages."""

from __future__ import annotations

import logging
import re
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

from cryptography import x509
from cryptography.x509.oid import NameOID

logger = logging.getLogger(__name__)

_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S+00:00"
_INT_RE = re.compile(r"[+-]?[0-9]+", re.ASCII)

_FORMULATIONS = {
    "dci-any": "http://www.smpte-ra.org/430-1/2006/KDM#kdm-key-type-dci-any",
    "dci-specific": "http://www.smpte-ra.org/430-1/2006/KDM#kdm-key-type-dci-specific",
}
_DEFAULT_FORMULATION = "http://www.smpte-ra.org/430-1/2006/KDM#kdm-key-type"

_UNITS = {
    "second": timedelta(seconds=1),
    "sec": timedelta(seconds=1),
    "minute": timedelta(minutes=1),
    "min": timedelta(minutes=1),
    "hour": timedelta(hours=1),
    "hr": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
    "wk": timedelta(weeks=1),
}
_SUFFIX_UNITS = (("h", timedelta(hours=1)), ("d", timedelta(days=1)), ("w", timedelta(weeks=1)))


class KdmError(Exception):
    """Raised when a KDM cannot be generated."""


@dataclass
class KdmConfig:
    """Settings for generating a KDM."""

    cpl_id: str = ""
    content_title: str = ""
    recipient_cert_file: Path = field(default_factory=Path)
    output_file: Path = field(default_factory=Path)
    valid_from: str = ""
    valid_to: str = ""
    formulation: str = ""


def _parse_int(text: str) -> int | None:
    return int(text) if _INT_RE.fullmatch(text) else None


def parse_duration(text: str) -> timedelta:
    """Parse '7 days', '3 weeks', '24h', '7d' or '2w' into a timedelta."""
    s = text.strip().lower()
    parts = s.split()

    if len(parts) == 2:
        n = _parse_int(parts[0])
        if n is None:
            raise KdmError(f"Invalid number in duration: '{parts[0]}'")
        unit = parts[1].rstrip("s")
        if unit not in _UNITS:
            raise KdmError(f"Unknown duration unit: '{unit}'")
        return _UNITS[unit] * n

    for suffix, step in _SUFFIX_UNITS:
        if s.endswith(suffix):
            n = _parse_int(s[: -len(suffix)])
            if n is None:
                raise KdmError(f"Invalid duration: '{s}'")
            return step * n

    raise KdmError(f"Cannot parse duration: '{s}'")


def _parse_start(start: str) -> datetime:
    text = start.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise KdmError(f"Cannot parse start date '{start}': {exc}") from exc
    if parsed.tzinfo is None:
        raise KdmError(f"Cannot parse start date '{start}': missing UTC offset")
    return parsed


def parse_validity_end(value: str, start: str) -> str:
    """Resolve a validity end: an ISO 8601 date as is, or a duration after start."""
    if "T" in value or (len(value) >= 10 and value[4] == "-"):
        return value
    start_dt = _parse_start(start)
    end = start_dt + parse_duration(value)
    return end.strftime(_DATE_FORMAT)


def formulation_uri(formulation: str) -> str:
    """Message type URI for a KDM formulation name such as 'DCI Any'."""
    key = formulation.lower().replace(" ", "-")
    return _FORMULATIONS.get(key, _DEFAULT_FORMULATION)


def extract_cn_from_pem(pem: str) -> str | None:
    """Subject common name of a PEM certificate, or None if there is none."""
    try:
        cert = x509.load_pem_x509_certificate(pem.encode("utf-8"))
    except ValueError:
        return None
    values = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not values:
        return None
    value = values[0].value
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return value.strip()


def _kdm_xml(
    *,
    kdm_id: uuid.UUID,
    message_id: uuid.UUID,
    message_type: str,
    title: str,
    recipient: str,
    issue_date: str,
    cpl_id: str,
    not_before: str,
    not_after: str,
    key_id: uuid.UUID,
    cipher_value: str,
) -> str:
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<DCinemaSecurityMessage xmlns="http://www.smpte-ra.org/schemas/430-3/2006/ETM">
  <AuthenticatedPublic Id="ID_{kdm_id}">
    <MessageId>urn:uuid:{message_id}</MessageId>
    <MessageType>{message_type}</MessageType>
    <AnnotationText>{title} KDM for {recipient}</AnnotationText>
    <IssueDate>{issue_date}</IssueDate>
    <Signer>
      <X509SubjectName>imfwizard KDM signer</X509SubjectName>
    </Signer>
    <RequiredExtensions>
      <KDMRequiredExtensions xmlns="http://www.smpte-ra.org/schemas/430-1/2006/KDM">
        <Recipient>
          <X509SubjectName>{recipient}</X509SubjectName>
        </Recipient>
        <CompositionPlaylistId>urn:uuid:{cpl_id}</CompositionPlaylistId>
        <ContentTitleText>{title}</ContentTitleText>
        <ContentKeysNotValidBefore>{not_before}</ContentKeysNotValidBefore>
        <ContentKeysNotValidAfter>{not_after}</ContentKeysNotValidAfter>
        <KeyIdList>
          <TypedKeyId>
            <KeyType>MDIK</KeyType>
            <KeyId>urn:uuid:{key_id}</KeyId>
          </TypedKeyId>
        </KeyIdList>
      </KDMRequiredExtensions>
    </RequiredExtensions>
  </AuthenticatedPublic>
  <AuthenticatedPrivate>
    <EncryptedKey xmlns="http://www.w3.org/2001/04/xmlenc#">
      <CipherData>
        <CipherValue>{cipher_value}</CipherValue>
      </CipherData>
    </EncryptedKey>
  </AuthenticatedPrivate>
</DCinemaSecurityMessage>
"""


def generate_kdm(config: KdmConfig) -> Path:
    """Write a KDM authorising the recipient for the CPL; return its path."""
    if not config.cpl_id:
        raise KdmError("CPL ID is required")
    cert_file = Path(config.recipient_cert_file)
    if not cert_file.exists():
        raise KdmError(f"Recipient certificate not found: {cert_file}")

    now = datetime.now(timezone.utc)
    if config.valid_from in ("", "now"):
        not_before = now.strftime(_DATE_FORMAT)
    else:
        not_before = config.valid_from
    not_after = parse_validity_end(config.valid_to, not_before)

    try:
        cert_pem = cert_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise KdmError(f"Cannot read recipient cert: {exc}") from exc
    recipient = extract_cn_from_pem(cert_pem) or "Unknown"

    xml = _kdm_xml(
        kdm_id=uuid.uuid4(),
        message_id=uuid.uuid4(),
        message_type=formulation_uri(config.formulation),
        title=config.content_title,
        recipient=recipient,
        issue_date=now.strftime(_DATE_FORMAT),
        cpl_id=config.cpl_id,
        not_before=not_before,
        not_after=not_after,
        key_id=uuid.uuid4(),
        cipher_value=secrets.token_bytes(16).hex(),
    )

    output = Path(config.output_file)
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise KdmError(f"Cannot create output directory: {exc}") from exc
    try:
        output.write_text(xml, encoding="utf-8")
    except OSError as exc:
        raise KdmError(f"Cannot write KDM: {exc}") from exc

    logger.info("KDM generated: %s", output)
    return output