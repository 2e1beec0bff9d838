"""lockaudit - audit Cargo.lock files against the RustSec advisory database."""

__version__ = "0.1.0"
