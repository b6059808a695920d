"""Generate and inspect X.509 certificates for digital cinema signing."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from enum import Enum
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ed448, ed25519, rsa
from cryptography.x509.oid import NameOID

logger = logging.getLogger(__name__)


class CertificateError(Exception):
    """Raised when a certificate cannot be generated or read."""


class CertType(Enum):
    """Certificate role in a chain."""

    ROOT = "Root"
    INTERMEDIATE = "Intermediate"
    LEAF = "Leaf"
    SIGNER = "Signer"


@dataclass
class CertOptions:
    """Options for generating a certificate and its private key."""

    cert_type: CertType = CertType.SIGNER
    common_name: str = ""
    organization: str = ""
    organizational_unit: str = ""
    country: str = "US"
    key_bits: int = 2048
    validity_days: int = 3650
    output_cert: Path | None = None
    output_key: Path | None = None
    issuer_cert: Path | None = None
    issuer_key: Path | None = None


@dataclass
class CertInfo:
    """Fields read from a certificate."""

    subject_cn: str = ""
    issuer_cn: str = ""
    serial: str = ""
    not_before: str = ""
    not_after: str = ""
    key_bits: int = 0
    is_ca: bool = False
    is_expired: bool = False
    thumbprint_sha1: str = ""


def _subject_name(opts: CertOptions) -> x509.Name:
    attributes = [x509.NameAttribute(NameOID.COMMON_NAME, opts.common_name)]
    if opts.organization:
        attributes.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, opts.organization))
    if opts.organizational_unit:
        attributes.append(
            x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, opts.organizational_unit)
        )
    if opts.country:
        attributes.append(x509.NameAttribute(NameOID.COUNTRY_NAME, opts.country))
    return x509.Name(attributes)


def _key_usage(cert_type: CertType) -> x509.KeyUsage:
    is_ca = cert_type in (CertType.ROOT, CertType.INTERMEDIATE)
    return x509.KeyUsage(
        digital_signature=not is_ca,
        content_commitment=not is_ca,
        key_encipherment=False,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=is_ca,
        crl_sign=is_ca,
        encipher_only=False,
        decipher_only=False,
    )


def _load_issuer(opts: CertOptions):
    if opts.issuer_cert is None or opts.issuer_key is None:
        raise CertificateError("issuer certificate and key are required")
    try:
        cert_pem = Path(opts.issuer_cert).read_bytes()
    except OSError as exc:
        raise CertificateError(f"failed to read issuer cert: {exc}") from exc
    try:
        key_pem = Path(opts.issuer_key).read_bytes()
    except OSError as exc:
        raise CertificateError(f"failed to read issuer key: {exc}") from exc
    try:
        issuer_key = serialization.load_pem_private_key(key_pem, password=None)
    except (ValueError, TypeError) as exc:
        raise CertificateError(f"failed to parse issuer key: {exc}") from exc
    try:
        issuer_cert = x509.load_pem_x509_certificate(cert_pem)
    except ValueError as exc:
        raise CertificateError(f"failed to parse issuer cert: {exc}") from exc
    return issuer_cert, issuer_key


def _signing_hash(key):
    if isinstance(key, (ed25519.Ed25519PrivateKey, ed448.Ed448PrivateKey)):
        return None
    return hashes.SHA256()


def _write(path: Path | None, data: bytes, what: str) -> None:
    if path is None:
        raise CertificateError(f"no output path for {what}")
    try:
        Path(path).write_bytes(data)
    except OSError as exc:
        raise CertificateError(f"failed to write {what}: {exc}") from exc


def generate_certificate(opts: CertOptions) -> Path:
    """Generate an RSA key and an X.509 certificate; return the certificate path.

    Root certificates are self-signed; all others are signed by the issuer
    certificate and key named in the options.
    """
    try:
        key = rsa.generate_private_key(public_exponent=65537, key_size=opts.key_bits)
    except ValueError as exc:
        raise CertificateError(f"failed to generate RSA key pair: {exc}") from exc

    try:
        subject = _subject_name(opts)
    except ValueError as exc:
        raise CertificateError(f"invalid subject name: {exc}") from exc

    if opts.cert_type is CertType.ROOT:
        issuer_name = subject
        signing_key = key
    else:
        issuer_cert, signing_key = _load_issuer(opts)
        issuer_name = issuer_cert.subject

    now = datetime.now(timezone.utc).replace(microsecond=0)
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer_name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=opts.validity_days))
        .add_extension(_key_usage(opts.cert_type), critical=True)
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False
        )
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(signing_key.public_key()),
            critical=False,
        )
    )
    if opts.cert_type is CertType.ROOT:
        builder = builder.add_extension(
            x509.BasicConstraints(ca=True, path_length=None), critical=True
        )
    elif opts.cert_type is CertType.INTERMEDIATE:
        builder = builder.add_extension(
            x509.BasicConstraints(ca=True, path_length=0), critical=True
        )

    try:
        cert = builder.sign(signing_key, _signing_hash(signing_key))
    except (ValueError, TypeError) as exc:
        raise CertificateError(f"failed to sign certificate: {exc}") from exc

    _write(opts.output_cert, cert.public_bytes(serialization.Encoding.PEM), "cert")
    _write(
        opts.output_key,
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ),
        "key",
    )
    logger.info("generated certificate: %s", opts.output_cert)
    return Path(opts.output_cert)


def generate_chain(organization: str, output_dir: str | Path) -> list[Path]:
    """Generate a root, intermediate and signer chain in output_dir.

    Returns the certificate paths in chain order, signer first.
    """
    output_dir = Path(output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise CertificateError(f"failed to create output dir: {exc}") from exc

    unit = "Digital Cinema"
    root = generate_certificate(
        CertOptions(
            cert_type=CertType.ROOT,
            common_name=f"{organization} Root CA",
            organization=organization,
            organizational_unit=unit,
            validity_days=3650 * 3,
            output_cert=output_dir / "root.pem",
            output_key=output_dir / "root.key",
        )
    )
    intermediate = generate_certificate(
        CertOptions(
            cert_type=CertType.INTERMEDIATE,
            common_name=f"{organization} Intermediate CA",
            organization=organization,
            organizational_unit=unit,
            validity_days=3650 * 2,
            output_cert=output_dir / "intermediate.pem",
            output_key=output_dir / "intermediate.key",
            issuer_cert=output_dir / "root.pem",
            issuer_key=output_dir / "root.key",
        )
    )
    signer = generate_certificate(
        CertOptions(
            cert_type=CertType.SIGNER,
            common_name=f"{organization} Signer",
            organization=organization,
            organizational_unit=unit,
            validity_days=3650,
            output_cert=output_dir / "signer.pem",
            output_key=output_dir / "signer.key",
            issuer_cert=output_dir / "intermediate.pem",
            issuer_key=output_dir / "intermediate.key",
        )
    )
    logger.info("generated certificate chain in %s", output_dir)
    return [signer, intermediate, root]


def _common_name(name: x509.Name) -> str:
    values = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not values:
        return ""
    value = values[0].value
    return value if isinstance(value, str) else value.decode("utf-8", errors="replace")


def _validity(cert: x509.Certificate, attribute: str) -> datetime:
    value = getattr(cert, f"{attribute}_utc", None)
    if value is None:
        value = getattr(cert, attribute).replace(tzinfo=timezone.utc)
    return value


def _is_ca(cert: x509.Certificate) -> bool:
    try:
        constraints = cert.extensions.get_extension_for_class(x509.BasicConstraints)
    except x509.ExtensionNotFound:
        return False
    return constraints.value.ca


def read_certificate(cert_path: str | Path) -> CertInfo:
    """Read subject, issuer, validity and thumbprint from a PEM certificate."""
    try:
        data = Path(cert_path).read_bytes()
    except OSError as exc:
        raise CertificateError(f"failed to read cert {cert_path}: {exc}") from exc
    try:
        cert = x509.load_pem_x509_certificate(data)
    except ValueError as exc:
        raise CertificateError(f"failed to parse PEM: {exc}") from exc

    public_key = cert.public_key()
    key_bits = public_key.key_size if isinstance(public_key, rsa.RSAPublicKey) else 0
    not_before = _validity(cert, "not_valid_before")
    not_after = _validity(cert, "not_valid_after")
    der = cert.public_bytes(serialization.Encoding.DER)

    return CertInfo(
        subject_cn=_common_name(cert.subject),
        issuer_cn=_common_name(cert.issuer),
        serial=format(cert.serial_number, "x"),
        not_before=format_datetime(not_before),
        not_after=format_datetime(not_after),
        key_bits=key_bits,
        is_ca=_is_ca(cert),
        is_expired=not_after < datetime.now(timezone.utc),
        thumbprint_sha1=hashlib.sha1(der).hexdigest(),
    )