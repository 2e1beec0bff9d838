"""Core auditor functionality.

Provides:
- Report and advisory data model
- Deny policy and report presentation
- Affected-version classification
"""

from .affected import AffectedVersionLister, classify, classify_all, crate_advisories
from .config import Config, DenyOption, OutputConfig, OutputFormat, load_config, load_output_config
from .database import Database
from .lockfile import Lockfile
from .models import (
    Advisory,
    AdvisoryMetadata,
    AdvisoryVersions,
    AdvisoryWarning,
    Collection,
    Dependency,
    Package,
    Report,
    Vulnerabilities,
    Vulnerability,
    WarningKind,
)
from .policy import deny_warning_kinds, parse_deny_options
from .presenter import Presenter, select_url
from .tree import DependencyTree, EdgeDirection, render_tree

__all__ = [
    "AffectedVersionLister",
    "classify",
    "classify_all",
    "crate_advisories",
    "Config",
    "DenyOption",
    "OutputConfig",
    "OutputFormat",
    "load_config",
    "load_output_config",
    "Database",
    "Lockfile",
    "Advisory",
    "AdvisoryMetadata",
    "AdvisoryVersions",
    "AdvisoryWarning",
    "Collection",
    "Dependency",
    "Package",
    "Report",
    "Vulnerabilities",
    "Vulnerability",
    "WarningKind",
    "deny_warning_kinds",
    "parse_deny_options",
    "Presenter",
    "select_url",
    "DependencyTree",
    "EdgeDirection",
    "render_tree",
]
