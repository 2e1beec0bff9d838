"""Network and filesystem collaborators.

Provides:
- fetch_with_retry: HTTP GET with backoff
- FileLock: Package-cache lock
- CratesIndex: crates.io sparse index client
- fetch_advisory_db: Default advisory database download
- OsvExporter: OSV export of the advisory database
"""

from .advisory_db import fetch_advisory_db
from .base import fetch_with_retry
from .crates_index import CratesIndex, CrateVersion
from .file_lock import FileLock
from .osv import OsvExporter, advisory_to_osv

__all__ = [
    "fetch_advisory_db",
    "fetch_with_retry",
    "CratesIndex",
    "CrateVersion",
    "FileLock",
    "OsvExporter",
    "advisory_to_osv",
]
