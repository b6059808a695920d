"""OV/VF version management backed by a SQLite database."""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import closing
from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_config_dir

logger = logging.getLogger(__name__)


class DashboardError(Exception):
    """Raised when the version database cannot be read or changed."""


@dataclass
class VersionEntry:
    """A version entry in the OV/VF management system."""

    uuid: str = ""
    title: str = ""
    version_type: str = ""
    territory: str = ""
    language: str = ""
    standard: str = ""
    dcp_path: Path | None = None
    ov_uuid: str = ""
    created_date: str = ""
    status: str = ""
    kdm_recipients: list[str] = field(default_factory=list)


@dataclass
class TerritoryInfo:
    """Territory distribution info."""

    code: str = ""
    name: str = ""
    version_count: int = 0
    languages: list[str] = field(default_factory=list)


_SCHEMA = """
CREATE TABLE IF NOT EXISTS versions (
    uuid TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    version_type TEXT NOT NULL DEFAULT 'OV',
    territory TEXT NOT NULL DEFAULT '',
    language TEXT NOT NULL DEFAULT '',
    standard TEXT NOT NULL DEFAULT 'SMPTE',
    dcp_path TEXT NOT NULL DEFAULT '',
    ov_uuid TEXT NOT NULL DEFAULT '',
    created_date TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL DEFAULT 'draft',
    kdm_recipients TEXT NOT NULL DEFAULT '[]'
);
CREATE INDEX IF NOT EXISTS idx_territory ON versions(territory);
CREATE INDEX IF NOT EXISTS idx_status ON versions(status);
"""

_COLUMNS = (
    "uuid, title, version_type, territory, language, standard, "
    "dcp_path, ov_uuid, created_date, status, kdm_recipients"
)

_TERRITORY_NAMES = {
    "US": "United States",
    "GB": "United Kingdom",
    "FR": "France",
    "DE": "Germany",
    "JP": "Japan",
    "CN": "China",
    "KR": "South Korea",
    "AU": "Australia",
    "CA": "Canada",
    "IT": "Italy",
    "ES": "Spain",
    "BR": "Brazil",
    "IN": "India",
    "MX": "Mexico",
}


def default_db_path() -> Path:
    """Path of the default version database, creating its directory."""
    config_dir = Path(user_config_dir("postkit"))
    try:
        config_dir.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass
    return config_dir / "versions.db"


def territory_name(code: str) -> str:
    """Human-readable name for a territory code; unknown codes map to themselves."""
    return _TERRITORY_NAMES.get(code, code)


def _connect(db_path: str | Path | None) -> sqlite3.Connection:
    path = Path(db_path) if db_path is not None else default_db_path()
    try:
        return sqlite3.connect(path)
    except sqlite3.Error as exc:
        raise DashboardError(f"Failed to open database: {exc}") from exc


def init_database(db_path: str | Path) -> None:
    """Create the versions table and its indexes if they do not exist."""
    with closing(_connect(db_path)) as conn:
        try:
            conn.executescript(_SCHEMA)
            conn.commit()
        except sqlite3.Error as exc:
            raise DashboardError(f"Failed to create tables: {exc}") from exc


def register_version(entry: VersionEntry, db_path: str | Path | None = None) -> None:
    """Insert or replace a DCP version (OV or VF)."""
    recipients = json.dumps(entry.kdm_recipients, separators=(",", ":"), ensure_ascii=False)
    dcp_path = str(entry.dcp_path) if entry.dcp_path is not None else ""
    with closing(_connect(db_path)) as conn:
        try:
            with conn:
                conn.execute(
                    f"INSERT OR REPLACE INTO versions ({_COLUMNS}) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        entry.uuid,
                        entry.title,
                        entry.version_type,
                        entry.territory,
                        entry.language,
                        entry.standard,
                        dcp_path,
                        entry.ov_uuid,
                        entry.created_date,
                        entry.status,
                        recipients,
                    ),
                )
        except sqlite3.Error as exc:
            raise DashboardError(f"Failed to insert version: {exc}") from exc


def _decode_recipients(text: str) -> list[str]:
    try:
        value = json.loads(text)
    except (TypeError, ValueError):
        return []
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return value
    return []


def _row_to_entry(row: tuple) -> VersionEntry:
    (uuid, title, version_type, territory, language, standard,
     dcp_path, ov_uuid, created_date, status, recipients) = row
    return VersionEntry(
        uuid=uuid,
        title=title,
        version_type=version_type,
        territory=territory,
        language=language,
        standard=standard,
        dcp_path=Path(dcp_path) if dcp_path else None,
        ov_uuid=ov_uuid,
        created_date=created_date,
        status=status,
        kdm_recipients=_decode_recipients(recipients),
    )


def list_versions(
    territory: str | None = None,
    status: str | None = None,
    db_path: str | Path | None = None,
) -> list[VersionEntry]:
    """List versions, newest first, optionally filtered; empty if unreadable."""
    sql = f"SELECT {_COLUMNS} FROM versions WHERE 1=1"
    params: list[str] = []
    if territory is not None:
        sql += " AND territory = ?"
        params.append(territory)
    if status is not None:
        sql += " AND status = ?"
        params.append(status)
    sql += " ORDER BY created_date DESC"

    try:
        with closing(_connect(db_path)) as conn:
            rows = conn.execute(sql, params).fetchall()
    except (DashboardError, sqlite3.Error):
        return []
    return [_row_to_entry(row) for row in rows]


def list_territories(db_path: str | Path | None = None) -> list[TerritoryInfo]:
    """Territories with their version counts and languages; empty if unreadable."""
    sql = (
        "SELECT territory, COUNT(*), GROUP_CONCAT(DISTINCT language) "
        "FROM versions GROUP BY territory ORDER BY territory"
    )
    try:
        with closing(_connect(db_path)) as conn:
            rows = conn.execute(sql).fetchall()
    except (DashboardError, sqlite3.Error):
        return []
    return [
        TerritoryInfo(
            code=code,
            name=territory_name(code),
            version_count=count,
            languages=[lang for lang in (languages or "").split(",") if lang],
        )
        for code, count, languages in rows
    ]


def update_status(uuid: str, new_status: str, db_path: str | Path | None = None) -> None:
    """Change a version's status (draft, released, archived)."""
    with closing(_connect(db_path)) as conn:
        try:
            with conn:
                cursor = conn.execute(
                    "UPDATE versions SET status = ? WHERE uuid = ?", (new_status, uuid)
                )
        except sqlite3.Error as exc:
            raise DashboardError(f"Failed to update status: {exc}") from exc
    if cursor.rowcount == 0:
        raise DashboardError(f"No version with uuid {uuid}")


def export_distribution_matrix(
    output_csv: str | Path, db_path: str | Path | None = None
) -> None:
    """Write a territory-by-title grid as CSV, marking available versions."""
    versions = list_versions(db_path=db_path)
    if not versions:
        raise DashboardError("No versions found")

    territories = sorted({v.territory for v in versions})
    titles = sorted({v.title for v in versions})
    available = {(v.territory, v.title) for v in versions}

    lines = [",".join(["Territory", *titles])]
    for territory in territories:
        cells = ["✓" if (territory, title) in available else "" for title in titles]
        lines.append(",".join([territory, *cells]))

    try:
        with open(output_csv, "w", encoding="utf-8", newline="") as handle:
            handle.write("\n".join(lines) + "\n")
    except OSError as exc:
        raise DashboardError(f"Failed to write CSV: {exc}") from exc