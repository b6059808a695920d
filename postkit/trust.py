"""Certificate chain validation and the store of trusted devices."""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from platformdirs import user_data_dir

from postkit.certificate import CertificateError, CertInfo, read_certificate

logger = logging.getLogger(__name__)


class ChainError(Exception):
    """Raised when a certificate chain is invalid."""


@dataclass
class TrustedDevice:
    """A trusted device and the certificate that identifies it."""

    name: str
    thumbprint: str
    certificate_path: Path

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "thumbprint": self.thumbprint,
            "certificate_path": str(self.certificate_path),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TrustedDevice":
        return cls(
            name=str(data["name"]),
            thumbprint=str(data["thumbprint"]),
            certificate_path=Path(data["certificate_path"]),
        )


def trusted_devices_dir() -> Path:
    """Default directory of the trusted device store."""
    return Path(user_data_dir()) / "postkit" / "trusted_devices"


def _store(devices_dir: str | Path | None) -> Path:
    return Path(devices_dir) if devices_dir is not None else trusted_devices_dir()


def validate_chain(chain: Iterable[str | Path]) -> list[CertInfo]:
    """Check a chain ordered leaf first, root last; return each certificate's info."""
    paths = [Path(p) for p in chain]
    if not paths:
        raise ChainError("empty certificate chain")

    infos = []
    for path in paths:
        try:
            info = read_certificate(path)
        except CertificateError as exc:
            raise ChainError(f"failed to parse certificate: {path}: {exc}") from exc
        if not info.subject_cn and not info.serial:
            raise ChainError(f"failed to parse certificate: {path}")
        infos.append(info)

    for path, info in zip(paths, infos):
        if info.is_expired:
            raise ChainError(f"certificate expired: {path}")

    for child, parent in zip(infos, infos[1:]):
        if child.issuer_cn != parent.subject_cn:
            raise ChainError(
                f"chain broken: '{child.subject_cn}' issuer '{child.issuer_cn}' "
                f"does not match '{parent.subject_cn}' subject '{parent.subject_cn}'"
            )

    root = infos[-1]
    if root.issuer_cn != root.subject_cn:
        raise ChainError(
            f"root cert is not self-signed: subject='{root.subject_cn}', "
            f"issuer='{root.issuer_cn}'"
        )

    logger.info("certificate chain valid (%d certificates)", len(infos))
    return infos


def add_trusted_device(
    cert_path: str | Path, name: str, devices_dir: str | Path | None = None
) -> TrustedDevice:
    """Copy a device certificate into the store and record its metadata."""
    store = _store(devices_dir)
    store.mkdir(parents=True, exist_ok=True)

    cert_path = Path(cert_path)
    info = read_certificate(cert_path)
    device = TrustedDevice(
        name=name, thumbprint=info.thumbprint_sha1, certificate_path=cert_path
    )

    shutil.copyfile(cert_path, store / f"{device.thumbprint}.pem")
    (store / f"{device.thumbprint}.json").write_text(
        json.dumps(device.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
    )
    logger.info("added trusted device '%s' (%s)", name, device.thumbprint)
    return device


def list_trusted_devices(devices_dir: str | Path | None = None) -> list[TrustedDevice]:
    """All trusted devices in the store; unreadable entries are skipped."""
    store = _store(devices_dir)
    if not store.is_dir():
        return []
    devices = []
    for path in sorted(store.glob("*.json")):
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            devices.append(TrustedDevice.from_dict(data))
        except (OSError, UnicodeDecodeError, ValueError, KeyError, TypeError):
            continue
    return devices


def remove_trusted_device(
    thumbprint: str, devices_dir: str | Path | None = None
) -> None:
    """Remove a device's certificate and metadata from the store."""
    store = _store(devices_dir)
    removed = False
    for path in (store / f"{thumbprint}.pem", store / f"{thumbprint}.json"):
        if path.exists():
            path.unlink()
            removed = True
    if not removed:
        raise FileNotFoundError(f"trusted device not found: {thumbprint}")
    logger.info("removed trusted device %s", thumbprint)