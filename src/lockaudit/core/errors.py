"""Error types raised by the auditor.

Every failure the auditor can hit is fatal for the current run. Nothing here
is retried or downgraded; the CLI turns these into an ``error:`` line and a
non-zero exit status.

Provides:
- AuditError: Base class for all auditor errors
- ConfigError: Malformed configuration or deny selectors
- DataError / MissingCollectionError: Advisory data that cannot be routed
- VersionParseError: Unparsable version string
- TreeLookupError: Package missing from the dependency tree
- LockfileError: Invalid Cargo.lock contents
- FetchError: Network fetch failures
- IndexFetchError / CrateNotFoundError: crates.io index failures
"""


class AuditError(Exception):
    """Base class for auditor errors."""


class ConfigError(AuditError):
    """Configuration could not be loaded or contains unknown values."""


class DataError(AuditError):
    """Advisory data is inconsistent or incomplete."""


class MissingCollectionError(DataError):
    """Advisory has no collection, so it cannot be routed."""

    def __init__(self, advisory_id: str):
        super().__init__(f"advisory {advisory_id} has no collection set")
        self.advisory_id = advisory_id


class VersionParseError(AuditError, ValueError):
    """A version or version requirement string could not be parsed."""


class TreeLookupError(AuditError, KeyError):
    """A package is not present in the dependency tree.

    This means the report and the lockfile it was computed from disagree.
    """

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "package not found in dependency tree"


class LockfileError(AuditError):
    """Cargo.lock could not be parsed into a dependency tree."""


class FetchError(AuditError):
    """A network fetch failed after all retries."""


class IndexFetchError(FetchError):
    """The crates.io index could not be fetched."""


class CrateNotFoundError(IndexFetchError):
    """The index has no entry for the requested crate."""

    def __init__(self, crate_name: str):
        super().__init__(f"expected crate {crate_name} to exist")
        self.crate_name = crate_name
