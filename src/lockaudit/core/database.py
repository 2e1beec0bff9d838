"""Advisory database loading.

Reads a checkout of the RustSec advisory database. Each advisory is a
markdown file whose front matter is a fenced ``toml`` block, followed by a
``# Title`` heading and the description::

    ```toml
    [advisory]
    id = "RUSTSEC-2019-0009"
    package = "smallvec"
    date = "2019-06-06"

    [versions]
    patched = [">= 0.6.10"]
    ```

    # Double-free and use-after-free in SmallVec::grow()

    Attempting to call `grow` on a spilled SmallVec ...

The collection comes from the top-level directory (``crates/`` or ``rust/``).

Provides:
- Database: Loaded advisories with iteration, lookup and queries
- parse_advisory: Parse one advisory file
"""

import datetime
import tomllib
from pathlib import Path
from typing import Iterable, Iterator

import structlog
from pydantic import ValidationError

from lockaudit.core.errors import DataError
from lockaudit.core.models import Advisory, Collection
from lockaudit.core.versions import parse_version

logger = structlog.get_logger()

_FENCE_OPEN = "```toml"
_FENCE_CLOSE = "```"


def parse_advisory(text: str, collection: Collection | None = None, source: str = "<string>") -> Advisory:
    """Parse a markdown advisory.

    Args:
        text: File contents
        collection: Collection to record on the advisory, if known
        source: Name used in error messages

    Returns:
        Parsed Advisory

    Raises:
        DataError: If the front matter is missing or invalid
    """
    lines = text.lstrip().splitlines()
    if not lines or lines[0].strip() != _FENCE_OPEN:
        raise DataError(f"{source}: advisory must start with a ```toml block")
    try:
        end = next(i for i, line in enumerate(lines[1:], 1) if line.strip() == _FENCE_CLOSE)
    except StopIteration:
        raise DataError(f"{source}: unterminated ```toml block") from None

    try:
        data = tomllib.loads("\n".join(lines[1:end]))
    except tomllib.TOMLDecodeError as e:
        raise DataError(f"{source}: invalid TOML front matter: {e}") from e

    advisory_table = dict(data.get("advisory", {}))
    for key in ("date", "withdrawn"):
        if isinstance(advisory_table.get(key), datetime.date):
            advisory_table[key] = advisory_table[key].isoformat()

    body = list(lines[end + 1:])
    while body and not body[0].strip():
        body.pop(0)
    if body and body[0].startswith("# "):
        advisory_table.setdefault("title", body[0][2:].strip())
        body = body[1:]
    advisory_table.setdefault("description", "\n".join(body).strip())
    if collection is not None:
        advisory_table.setdefault("collection", collection.value)

    try:
        return Advisory.model_validate(
            {
                "advisory": advisory_table,
                "versions": data.get("versions", {}),
                "affected": data.get("affected"),
            }
        )
    except ValidationError as e:
        raise DataError(f"{source}: invalid advisory: {e}") from e


class Database:
    """In-memory advisory database."""

    def __init__(self, advisories: Iterable[Advisory]):
        self._advisories: list[Advisory] = list(advisories)
        self._by_id = {advisory.id: advisory for advisory in self._advisories}

    @classmethod
    def open(cls, path: str | Path) -> "Database":
        """Load every advisory under ``path``.

        Raises:
            DataError: If the directory is missing or an advisory is invalid
        """
        root = Path(path)
        if not root.is_dir():
            raise DataError(f"advisory database not found at {root}")

        advisories = []
        for file in sorted(root.glob("*/*/*.md")):
            top = file.relative_to(root).parts[0]
            try:
                collection = Collection(top)
            except ValueError:
                continue
            advisories.append(
                parse_advisory(file.read_text(encoding="utf-8"), collection, str(file))
            )

        logger.info("advisory_db_loaded", path=str(root), advisories=len(advisories))
        return cls(advisories)

    def __iter__(self) -> Iterator[Advisory]:
        return iter(self._advisories)

    def __len__(self) -> int:
        return len(self._advisories)

    def iter(self) -> Iterator[Advisory]:
        return iter(self._advisories)

    def get(self, advisory_id: str) -> Advisory | None:
        return self._by_id.get(advisory_id)

    def query(self, package: str, version: str) -> list[Advisory]:
        """Non-withdrawn crate advisories affecting ``package`` at ``version``.

        Raises:
            VersionParseError: If ``version`` is not a valid version
        """
        parsed = parse_version(version)
        return [
            advisory
            for advisory in self._advisories
            if advisory.package == package
            and advisory.collection in (Collection.CRATES, None)
            and advisory.metadata.withdrawn is None
            and advisory.versions.is_vulnerable(parsed)
        ]
