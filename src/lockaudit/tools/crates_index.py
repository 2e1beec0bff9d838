"""crates.io sparse index client.

Fetches the index entry of a crate (one JSON object per published version)
while holding the package-cache lock, and keeps a copy in the local cache.

Provides:
- CrateVersion: One line of an index entry
- index_path: Relative index path of a crate name
- parse_index_entries: Parse the body of an index entry
- CratesIndex: Async client returning published versions
"""

import json
import re

import aiohttp
import structlog
from pydantic import BaseModel, ConfigDict, ValidationError

from lockaudit.core.config import Config, load_config
from lockaudit.core.errors import CrateNotFoundError, IndexFetchError
from lockaudit.tools.base import fetch_with_retry
from lockaudit.tools.file_lock import FileLock

logger = structlog.get_logger()

_CRATE_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$")


class CrateVersion(BaseModel):
    """A published version as listed in the index."""

    model_config = ConfigDict(extra="ignore")

    name: str
    vers: str
    yanked: bool = False


def index_path(crate_name: str) -> str:
    """Path of a crate inside the index, e.g. ``se/rd/serde``.

    Raises:
        IndexFetchError: If the name is not a valid crate name
    """
    if not _CRATE_NAME_RE.match(crate_name):
        raise IndexFetchError(f"invalid crate name {crate_name!r}")

    name = crate_name.lower()
    if len(name) <= 2:
        return f"{len(name)}/{name}"
    if len(name) == 3:
        return f"3/{name[0]}/{name}"
    return f"{name[:2]}/{name[2:4]}/{name}"


def parse_index_entries(body: bytes, crate_name: str) -> list[CrateVersion]:
    """Parse newline-delimited JSON from the index.

    Raises:
        IndexFetchError: If a line is not a valid index record
    """
    versions = []
    for line in body.decode("utf-8").splitlines():
        if not line.strip():
            continue
        try:
            versions.append(CrateVersion.model_validate(json.loads(line)))
        except (json.JSONDecodeError, ValidationError) as e:
            raise IndexFetchError(f"malformed index entry for {crate_name}: {e}") from e
    return versions


class CratesIndex:
    """Client for the crates.io sparse index.

    Args:
        config: Application configuration (index URL, cache dir, retries)
    """

    def __init__(self, config: Config | None = None):
        self.config = config or load_config()

    async def crate_versions(self, crate_name: str) -> list[CrateVersion]:
        """Fetch every published version of a crate.

        Raises:
            CrateNotFoundError: If the index has no such crate
            IndexFetchError: On any other fetch failure
        """
        path = index_path(crate_name)
        url = f"{self.config.index_url.rstrip('/')}/{path}"
        cache_file = self.config.cache_dir / "index" / path
        log = logger.bind(crate=crate_name, url=url)

        timeout = aiohttp.ClientTimeout(total=self.config.fetch_timeout)
        async with FileLock(self.config.lock_path):
            async with aiohttp.ClientSession(timeout=timeout) as session:
                status, body = await fetch_with_retry(
                    session, url, max_retries=self.config.fetch_retries
                )

            if status == 404:
                raise CrateNotFoundError(crate_name)
            if status != 200:
                raise IndexFetchError(f"GET {url} returned HTTP {status}")

            cache_file.parent.mkdir(parents=True, exist_ok=True)
            cache_file.write_bytes(body)

        versions = parse_index_entries(body, crate_name)
        log.info("index_fetch", versions=len(versions))
        return versions

    async def versions(self, crate_name: str) -> list[str]:
        """Published version strings of a crate, in index order."""
        return [entry.vers for entry in await self.crate_versions(crate_name)]
