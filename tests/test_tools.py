"""Tests for network collaborators: retrying fetch, crates.io index and the cache lock."""

import json
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from lockaudit.core.config import Config
from lockaudit.core.errors import CrateNotFoundError, FetchError, IndexFetchError
from lockaudit.tools.base import fetch_with_retry
from lockaudit.tools.crates_index import CratesIndex, index_path, parse_index_entries
from lockaudit.tools.file_lock import FileLock


class FakeResponse:
    def __init__(self, status, body=b""):
        self.status = status
        self._body = body

    async def read(self):
        return self._body


class FakeSession:
    """Replays one outcome (response or exception) per GET."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.urls = []

    @asynccontextmanager
    async def get(self, url):
        self.urls.append(url)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        yield outcome


def index_body(*versions):
    lines = [json.dumps({"name": "demo", "vers": v, "deps": [], "cksum": "00"}) for v in versions]
    return "\n".join(lines).encode()


# fetch_with_retry


@pytest.mark.asyncio
async def test_fetch_returns_first_success():
    session = FakeSession([FakeResponse(200, b"ok")])

    assert await fetch_with_retry(session, "https://example.test/a") == (200, b"ok")
    assert session.urls == ["https://example.test/a"]


@pytest.mark.asyncio
async def test_fetch_returns_client_errors_without_retry():
    session = FakeSession([FakeResponse(404)])

    status, _ = await fetch_with_retry(session, "https://example.test/a")

    assert status == 404
    assert len(session.urls) == 1


@pytest.mark.asyncio
async def test_fetch_retries_server_errors():
    session = FakeSession([FakeResponse(503), FakeResponse(502), FakeResponse(200, b"ok")])

    with patch("lockaudit.tools.base.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        status, body = await fetch_with_retry(session, "https://example.test/a")

    assert (status, body) == (200, b"ok")
    assert [call.args[0] for call in mock_sleep.await_args_list] == [1, 2]


@pytest.mark.asyncio
async def test_fetch_gives_up_after_max_retries():
    session = FakeSession([aiohttp.ClientConnectionError("refused")] * 3)

    with patch("lockaudit.tools.base.asyncio.sleep", new_callable=AsyncMock):
        with pytest.raises(FetchError, match="refused"):
            await fetch_with_retry(session, "https://example.test/a", max_retries=3)

    assert len(session.urls) == 3


@pytest.mark.asyncio
async def test_fetch_server_error_on_last_attempt():
    session = FakeSession([FakeResponse(500)])

    with pytest.raises(FetchError, match="HTTP 500"):
        await fetch_with_retry(session, "https://example.test/a", max_retries=1)


# crates.io index


@pytest.mark.parametrize(
    "name, path",
    [
        ("a", "1/a"),
        ("cc", "2/cc"),
        ("syn", "3/s/syn"),
        ("serde", "se/rd/serde"),
        ("Inflector", "in/fl/inflector"),
    ],
)
def test_index_path(name, path):
    assert index_path(name) == path


@pytest.mark.parametrize("name", ["", "../etc", "-dash", "a" * 65])
def test_index_path_rejects_invalid_names(name):
    with pytest.raises(IndexFetchError, match="invalid crate name"):
        index_path(name)


def test_parse_index_entries():
    entries = parse_index_entries(index_body("0.9.0", "1.0.0") + b"\n\n", "demo")

    assert [e.vers for e in entries] == ["0.9.0", "1.0.0"]
    assert not entries[0].yanked


def test_parse_index_entries_malformed():
    with pytest.raises(IndexFetchError, match="malformed index entry for demo"):
        parse_index_entries(b'{"name": "demo"}\n', "demo")


@pytest.mark.asyncio
async def test_crates_index_versions(tmp_path):
    config = Config(index_url="https://index.example.test/", cache_dir=tmp_path)
    body = index_body("0.9.0", "1.0.0")

    with patch(
        "lockaudit.tools.crates_index.fetch_with_retry",
        new=AsyncMock(return_value=(200, body)),
    ) as mock_fetch:
        versions = await CratesIndex(config).versions("demo")

    assert versions == ["0.9.0", "1.0.0"]
    assert mock_fetch.await_args.args[1] == "https://index.example.test/de/mo/demo"
    assert (tmp_path / "index" / "de" / "mo" / "demo").read_bytes() == body


@pytest.mark.asyncio
async def test_crates_index_missing_crate(tmp_path):
    config = Config(cache_dir=tmp_path)

    with patch(
        "lockaudit.tools.crates_index.fetch_with_retry",
        new=AsyncMock(return_value=(404, b"")),
    ):
        with pytest.raises(CrateNotFoundError, match="expected crate nonexistent to exist"):
            await CratesIndex(config).versions("nonexistent")


@pytest.mark.asyncio
async def test_crates_index_unexpected_status(tmp_path):
    config = Config(cache_dir=tmp_path)

    with patch(
        "lockaudit.tools.crates_index.fetch_with_retry",
        new=AsyncMock(return_value=(403, b"")),
    ):
        with pytest.raises(IndexFetchError, match="HTTP 403"):
            await CratesIndex(config).versions("demo")


# File lock


def test_file_lock_excludes_second_holder(tmp_path):
    lock_path = tmp_path / "cache" / ".package-cache.lock"

    with FileLock(lock_path) as held:
        assert held.is_locked
        with pytest.raises(TimeoutError):
            FileLock(lock_path, timeout=0.2, poll_interval=0.05).acquire()

    assert not held.is_locked
    with FileLock(lock_path, timeout=0.2):
        pass


def test_file_lock_release_when_not_held(tmp_path):
    lock = FileLock(tmp_path / "lock")

    lock.release()

    assert not lock.is_locked


@pytest.mark.asyncio
async def test_file_lock_async(tmp_path):
    lock_path = tmp_path / "lock"

    async with FileLock(lock_path) as held:
        assert held.is_locked
        with pytest.raises(TimeoutError):
            await FileLock(lock_path, timeout=0.2, poll_interval=0.05).acquire_async()

    assert lock_path.exists()
