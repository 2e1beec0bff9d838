"""Download of the default advisory database.

Used when no local checkout is given. The archive is unpacked into the cache
directory while holding the package-cache lock.
"""

import io
import shutil
import tarfile
from pathlib import Path

import aiohttp
import structlog

from lockaudit.core.config import Config, load_config
from lockaudit.core.errors import DataError, FetchError
from lockaudit.tools.base import fetch_with_retry
from lockaudit.tools.file_lock import FileLock

logger = structlog.get_logger()


async def fetch_advisory_db(config: Config | None = None) -> Path:
    """Download and unpack the advisory database archive.

    Args:
        config: Application configuration (archive URL, cache dir, retries)

    Returns:
        Path of the unpacked database root

    Raises:
        FetchError: If the archive cannot be downloaded
        DataError: If the archive cannot be unpacked
    """
    config = config or load_config()
    dest = config.cache_dir / "advisory-db"
    url = config.advisory_db_url

    timeout = aiohttp.ClientTimeout(total=config.fetch_timeout)
    async with FileLock(config.lock_path):
        async with aiohttp.ClientSession(timeout=timeout) as session:
            status, body = await fetch_with_retry(session, url, max_retries=config.fetch_retries)
        if status != 200:
            raise FetchError(f"GET {url} returned HTTP {status}")

        if dest.exists():
            shutil.rmtree(dest)
        dest.mkdir(parents=True)
        try:
            with tarfile.open(fileobj=io.BytesIO(body), mode="r:gz") as tar:
                tar.extractall(dest, filter="data")
        except tarfile.TarError as e:
            raise DataError(f"invalid advisory database archive from {url}: {e}") from e

    # GitHub archives wrap everything in a single "<repo>-<branch>/" directory
    children = [p for p in dest.iterdir() if p.is_dir()]
    root = children[0] if len(children) == 1 else dest
    logger.info("advisory_db_fetched", url=url, path=str(root))
    return root
