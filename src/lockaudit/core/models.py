"""Data model for advisories, packages and audit reports.

The shapes follow the JSON emitted by ``cargo audit --json`` so a report can be
loaded, presented and written back out unchanged. Unknown fields are kept
(``extra="allow"``) for the same reason.

Provides:
- WarningKind / Collection: Enums for warning categories and advisory collections
- Dependency: name+version key used for tree lookups and deduplication
- Package: A resolved package from a lockfile
- AdvisoryMetadata / AdvisoryVersions / Advisory: Advisory records
- Vulnerability / AdvisoryWarning: Findings bound to a package
- Vulnerabilities / Report: A complete audit report
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from semver import Version

from lockaudit.core.errors import DataError
from lockaudit.core.severity import calculate_severity
from lockaudit.core.versions import parse_req

CC_BY_4_0 = "CC-BY-4.0"


class WarningKind(str, Enum):
    """Kind of non-fatal finding."""

    NOTICE = "notice"
    UNMAINTAINED = "unmaintained"
    UNSOUND = "unsound"
    YANKED = "yanked"


class Collection(str, Enum):
    """Which advisory collection an advisory belongs to.

    CRATES: Advisories against packages published on crates.io
    RUST: Advisories against the Rust toolchain itself
    """

    CRATES = "crates"
    RUST = "rust"


@dataclass(frozen=True, order=True)
class Dependency:
    """Package identity: two packages are the same dependency iff name and version match."""

    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name} {self.version}"


class Package(BaseModel):
    """A resolved package as it appears in Cargo.lock or a report."""

    model_config = ConfigDict(extra="allow")

    name: str
    version: str
    source: str | None = None
    checksum: str | None = None
    dependencies: list[str | dict[str, Any]] = Field(default_factory=list)

    @property
    def key(self) -> Dependency:
        return Dependency(self.name, self.version)


class AdvisoryMetadata(BaseModel):
    """Descriptive fields of an advisory (the ``[advisory]`` table)."""

    model_config = ConfigDict(extra="allow")

    id: str
    package: str
    title: str
    description: str = ""
    date: str
    aliases: list[str] = Field(default_factory=list)
    related: list[str] = Field(default_factory=list)
    collection: Collection | None = None
    categories: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    cvss: str | None = None
    informational: str | None = None
    references: list[str] = Field(default_factory=list)
    source: str | None = None
    url: str | None = None
    withdrawn: str | None = None
    license: str = "CC0-1.0"

    @field_validator("cvss")
    @classmethod
    def _check_cvss(cls, value: str | None) -> str | None:
        if value is not None:
            calculate_severity(value)
        return value

    def id_url(self) -> str | None:
        """Canonical URL derived from the advisory ID, if the ID kind has one."""
        if self.id.startswith("RUSTSEC-"):
            return f"https://rustsec.org/advisories/{self.id}.html"
        if self.id.startswith("CVE-"):
            return f"https://nvd.nist.gov/vuln/detail/{self.id}"
        if self.id.startswith("GHSA-"):
            return f"https://github.com/advisories/{self.id}"
        return None

    def severity(self) -> tuple[float, str] | None:
        if self.cvss is None:
            return None
        return calculate_severity(self.cvss)


class AdvisoryVersions(BaseModel):
    """Patched and unaffected version requirements of an advisory.

    A version is vulnerable when it matches none of the requirements in
    either list.
    """

    model_config = ConfigDict(extra="allow")

    patched: list[str] = Field(default_factory=list)
    unaffected: list[str] = Field(default_factory=list)

    @field_validator("patched", "unaffected")
    @classmethod
    def _check_reqs(cls, value: list[str]) -> list[str]:
        for req in value:
            parse_req(req)
        return value

    def is_vulnerable(self, version: Version) -> bool:
        for req in self.patched + self.unaffected:
            if parse_req(req).matches(version):
                return False
        return True


class Advisory(BaseModel):
    """An advisory as loaded from the database."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    metadata: AdvisoryMetadata = Field(alias="advisory")
    versions: AdvisoryVersions = Field(default_factory=AdvisoryVersions)
    affected: dict[str, Any] | None = None

    @property
    def id(self) -> str:
        return self.metadata.id

    @property
    def package(self) -> str:
        return self.metadata.package

    @property
    def collection(self) -> Collection | None:
        return self.metadata.collection


class Vulnerability(BaseModel):
    """An advisory matched against a package present in the lockfile."""

    model_config = ConfigDict(extra="allow")

    advisory: AdvisoryMetadata
    versions: AdvisoryVersions = Field(default_factory=AdvisoryVersions)
    affected: dict[str, Any] | None = None
    package: Package


class AdvisoryWarning(BaseModel):
    """A non-fatal finding (yanked, unmaintained, unsound, notice)."""

    model_config = ConfigDict(extra="allow")

    kind: WarningKind
    package: Package
    advisory: AdvisoryMetadata | None = None
    affected: dict[str, Any] | None = None
    versions: AdvisoryVersions | None = None


class Vulnerabilities(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    found: bool = False
    count: int = 0
    items: list[Vulnerability] = Field(default_factory=list, alias="list")


class Report(BaseModel):
    """Result of auditing one lockfile."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    database: dict[str, Any] = Field(default_factory=dict)
    lockfile: dict[str, Any] = Field(default_factory=dict)
    settings: dict[str, Any] = Field(default_factory=dict)
    vulnerabilities: Vulnerabilities = Field(default_factory=Vulnerabilities)
    warnings: dict[WarningKind, list[AdvisoryWarning]] = Field(default_factory=dict)

    @classmethod
    def load(cls, path: str | Path) -> "Report":
        """Load a JSON report as written by ``cargo audit --json``.

        Raises:
            DataError: If the file cannot be read or is not a valid report
        """
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise DataError(f"cannot read report {path}: {e}") from e
        try:
            return cls.model_validate_json(text)
        except ValidationError as e:
            raise DataError(f"invalid report {path}: {e}") from e
