"""Export advisories to the OSV format (https://ossf.github.io/osv-schema/).

Provides:
- osv_events: SEMVER range events from patched/unaffected requirements
- advisory_to_osv: One advisory as an OSV dict
- OsvExporter: Writes ``<id>.json`` for every crate advisory
"""

import json
from pathlib import Path
from typing import Any

import structlog
from semver import Version

from lockaudit.core.affected import crate_advisories
from lockaudit.core.config import Config
from lockaudit.core.database import Database
from lockaudit.core.models import Advisory, AdvisoryVersions
from lockaudit.core.versions import parse_req
from lockaudit.tools.advisory_db import fetch_advisory_db

logger = structlog.get_logger()

OSV_SCHEMA_VERSION = "1.4.0"
_ZERO = Version(0, 0, 0)


def _format_version(version: Version) -> str:
    return "0.0.0-0" if version == _ZERO else str(version)


def osv_events(versions: AdvisoryVersions) -> list[dict[str, str]]:
    """Turn the safe ranges of an advisory into OSV introduced/fixed events.

    Everything not covered by a patched or unaffected requirement is
    vulnerable, so events are emitted for the gaps between safe ranges.
    """
    safe = []
    for text in versions.patched + versions.unaffected:
        req = parse_req(text)
        safe.append((req.lower_bound() or _ZERO, req.upper_bound()))
    safe.sort(key=lambda bounds: bounds[0])

    events: list[dict[str, str]] = []
    start: Version | None = _ZERO
    for low, high in safe:
        if start is None:
            break
        if low > start:
            events.append({"introduced": _format_version(start)})
            events.append({"fixed": str(low)})
        start = None if high is None else max(start, high)

    if start is not None:
        events.append({"introduced": _format_version(start)})
    return events


def advisory_to_osv(advisory: Advisory) -> dict[str, Any]:
    """Convert one crate advisory into an OSV record."""
    metadata = advisory.metadata
    timestamp = f"{metadata.date}T12:00:00Z"

    references = []
    if metadata.id_url():
        references.append({"type": "ADVISORY", "url": metadata.id_url()})
    if metadata.url:
        references.append({"type": "REPORT", "url": metadata.url})
    references.extend({"type": "WEB", "url": url} for url in metadata.references)

    record: dict[str, Any] = {
        "schema_version": OSV_SCHEMA_VERSION,
        "id": metadata.id,
        "modified": timestamp,
        "published": timestamp,
        "aliases": metadata.aliases,
        "related": metadata.related,
        "summary": metadata.title,
        "details": metadata.description,
        "severity": [],
        "affected": [
            {
                "package": {
                    "ecosystem": "crates.io",
                    "name": metadata.package,
                    "purl": f"pkg:cargo/{metadata.package}",
                },
                "ranges": [{"type": "SEMVER", "events": osv_events(advisory.versions)}],
                "ecosystem_specific": {"affects": advisory.affected or {}},
                "database_specific": {
                    "categories": metadata.categories,
                    "cvss": metadata.cvss,
                    "informational": metadata.informational,
                },
            }
        ],
        "references": references,
        "database_specific": {"license": metadata.license},
    }

    if metadata.cvss:
        kind = "CVSS_V4" if metadata.cvss.startswith("CVSS:4.") else "CVSS_V3"
        record["severity"].append({"type": kind, "score": metadata.cvss})
    if metadata.withdrawn:
        record["withdrawn"] = f"{metadata.withdrawn}T12:00:00Z"

    return record


class OsvExporter:
    """Writes an advisory database out as OSV JSON files.

    Args:
        database: Loaded advisory database
    """

    def __init__(self, database: Database):
        self.database = database

    @classmethod
    async def open(cls, repo_path: str | Path | None = None, config: Config | None = None) -> "OsvExporter":
        """Load the database from ``repo_path``, or download the default one.

        Raises:
            FetchError: If the default database cannot be downloaded
            DataError: If the database cannot be loaded
        """
        if repo_path is None:
            repo_path = await fetch_advisory_db(config)
        return cls(Database.open(repo_path))

    def export_all(self, out_dir: str | Path) -> int:
        """Write one ``<id>.json`` per crate advisory into ``out_dir``.

        Returns:
            Number of files written

        Raises:
            OSError: If a file cannot be written
            MissingCollectionError: If an advisory has no collection
        """
        out = Path(out_dir)
        out.mkdir(parents=True, exist_ok=True)

        count = 0
        for advisory in crate_advisories(self.database):
            path = out / f"{advisory.id}.json"
            with open(path, "w", encoding="utf-8") as f:
                json.dump(advisory_to_osv(advisory), f, indent=2)
                f.write("\n")
            count += 1

        logger.info("osv_export_complete", path=str(out), advisories=count)
        return count
