"""Affected-version classification.

Given an advisory and every published version of its crate, work out which
versions the advisory covers.

Provides:
- classify: Lazily yield (version, is_vulnerable) for one advisory
- crate_advisories: Filter a database down to crate advisories
- classify_all: classify every crate advisory of a database
- AffectedVersionLister: Print per-version status using the crates.io index
"""

from typing import Callable, Iterable, Iterator, Protocol, Sequence

import structlog

from lockaudit.core.errors import MissingCollectionError
from lockaudit.core.models import Advisory, Collection
from lockaudit.core.terminal import Terminal
from lockaudit.core.versions import parse_version

logger = structlog.get_logger()


class VersionSource(Protocol):
    """Anything that lists the published versions of a crate."""

    async def versions(self, crate_name: str) -> list[str]:
        ...


def classify(advisory: Advisory, versions: Iterable[str]) -> Iterator[tuple[str, bool]]:
    """Yield ``(version, is_vulnerable)`` for each published version.

    Calling again with the same arguments yields the same sequence.

    Raises:
        VersionParseError: On the first version that cannot be parsed
    """
    predicate = advisory.versions
    for version in versions:
        yield version, predicate.is_vulnerable(parse_version(version))


def crate_advisories(advisories: Iterable[Advisory]) -> Iterator[Advisory]:
    """Yield only advisories in the crates collection.

    Toolchain advisories are skipped silently.

    Raises:
        MissingCollectionError: If an advisory has no collection
    """
    for advisory in advisories:
        if advisory.collection is None:
            raise MissingCollectionError(advisory.id)
        if advisory.collection != Collection.CRATES:
            logger.debug("advisory_skipped", id=advisory.id, collection=advisory.collection.value)
            continue
        yield advisory


def classify_all(
    advisories: Iterable[Advisory],
    versions_of: Callable[[str], Sequence[str]],
) -> Iterator[tuple[Advisory, list[tuple[str, bool]]]]:
    """Classify the versions of every crate advisory, one advisory at a time.

    Args:
        advisories: Advisory database (or any iterable of advisories)
        versions_of: Returns the published versions of a crate
    """
    for advisory in crate_advisories(advisories):
        yield advisory, list(classify(advisory, versions_of(advisory.package)))


class AffectedVersionLister:
    """Lists all versions of a crate and which ones an advisory affects.

    Args:
        index: Source of published versions (normally CratesIndex)
        advisories: Loaded advisory database
        terminal: Output destination
    """

    def __init__(
        self,
        index: VersionSource,
        advisories: Iterable[Advisory],
        terminal: Terminal | None = None,
    ):
        self.index = index
        self.advisories = advisories
        self.terminal = terminal or Terminal()

    async def process_one_advisory(self, advisory: Advisory) -> None:
        """Print ``<version> vulnerable`` or ``<version> OK`` for each version."""
        self.terminal.status_ok("Loaded", f"{advisory.id} for '{advisory.package}'")
        versions = await self.index.versions(advisory.package)
        for version, vulnerable in classify(advisory, versions):
            self.terminal.echo(f"{version} {'vulnerable' if vulnerable else 'OK'}")

    async def process_all_advisories(self) -> None:
        for advisory in crate_advisories(self.advisories):
            await self.process_one_advisory(advisory)
