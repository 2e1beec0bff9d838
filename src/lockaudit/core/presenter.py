"""Presenter for audit reports.

Turns a Report into terminal output (or JSON), decides which warnings are
denied under the configured policy, and answers whether the run failed.

Provides:
- Presenter: Prints reports and self-advisories, computes exit status
- select_url: Pick the URL to show for an advisory
"""

from pathlib import Path

import structlog

from lockaudit.core.config import DenyOption, OutputConfig, OutputFormat
from lockaudit.core.lockfile import Lockfile
from lockaudit.core.models import (
    CC_BY_4_0,
    Advisory,
    AdvisoryMetadata,
    AdvisoryWarning,
    Dependency,
    Package,
    Report,
    Vulnerability,
)
from lockaudit.core.policy import deny_warning_kinds
from lockaudit.core.terminal import RED, YELLOW, Terminal
from lockaudit.core.tree import DependencyGraph, EdgeDirection, render_tree

logger = structlog.get_logger()

SELF_ADVISORY_NOTICE = (
    "This copy of lockaudit has known advisories! Upgrade lockaudit to the "
    "latest version: pip install --upgrade lockaudit"
)


def select_url(metadata: AdvisoryMetadata) -> str | None:
    """Choose the single URL displayed for an advisory.

    CC-BY-4.0 advisories must keep their original ``url`` for attribution.
    Everything else prefers the ID URL, since ``url`` usually points at a bug
    tracker rather than the advisory itself.
    """
    if metadata.license == CC_BY_4_0:
        return metadata.url or metadata.id_url()
    return metadata.id_url() or metadata.url


class Presenter:
    """Vulnerability information presenter.

    One presenter handles one audit run. It remembers which packages already
    had their dependency tree printed, so a package with several findings is
    only drawn once.

    Args:
        config: Output configuration for the run
        file: Stream for finding blocks (stdout when None)
        status_file: Stream for status lines (``file`` if given, else stderr)
    """

    def __init__(self, config: OutputConfig, file=None, status_file=None):
        self.config = config
        self.displayed_packages: set[Dependency] = set()
        self.deny_warning_kinds = deny_warning_kinds(config.deny)
        self.terminal = Terminal(file, config.color, status_file)

    def before_report(self, path: str | Path, lockfile: Lockfile) -> None:
        """Information to display before a report is generated."""
        if not self.config.is_quiet():
            self.terminal.status_ok(
                "Scanning",
                f"{path} for vulnerabilities ({len(lockfile.packages)} crate dependencies)",
            )

    def print_report(
        self, report: Report, lockfile: Lockfile | None, path: str | Path | None = None
    ) -> None:
        """Print the report generated by an audit.

        Args:
            report: Audit result
            lockfile: The lockfile the report was computed from (unused for JSON)
            path: Path shown in the summary lines
        """
        if self.config.format == OutputFormat.JSON:
            self.terminal.echo(report.model_dump_json(by_alias=True))
            self.terminal.flush()
            return

        if lockfile is None:
            raise ValueError("a lockfile is required for terminal output")
        tree = lockfile.dependency_tree()

        # Keep the summary below in sync with should_exit_with_failure()
        for vulnerability in report.vulnerabilities.items:
            self._print_vulnerability(vulnerability, tree)

        for warnings in report.warnings.values():
            for warning in warnings:
                self._print_warning(warning, tree)

        location = f" in {path}" if path is not None else None

        if report.vulnerabilities.found:
            count = report.vulnerabilities.count
            noun = "vulnerability" if count == 1 else "vulnerabilities"
            self.terminal.status_err(f"{count} {noun} found{location or '!'}")

        num_denied, num_allowed = self.count_warnings(report)

        if num_denied > 0:
            self.terminal.status_err(
                f"{num_denied} denied {self._warning_word(num_denied)} found{location or '!'}"
            )
        if num_allowed > 0:
            self.terminal.status_warn(
                f"{num_allowed} allowed {self._warning_word(num_allowed)} found{location or ''}"
            )

        logger.debug(
            "report_presented",
            vulnerabilities=report.vulnerabilities.count,
            denied_warnings=num_denied,
            allowed_warnings=num_allowed,
        )

    def print_self_report(self, self_advisories: list[Advisory]) -> None:
        """Print advisories that affect this copy of lockaudit."""
        if not self_advisories:
            return

        deny = DenyOption.WARNINGS in self.config.deny
        if deny:
            self.terminal.status_err(SELF_ADVISORY_NOTICE)
        else:
            self.terminal.status_warn(SELF_ADVISORY_NOTICE)

        for advisory in self_advisories:
            self._print_metadata(advisory.metadata, self._warning_color(deny))
        self.terminal.echo()

    def should_exit_with_failure(self, report: Report) -> bool:
        """Whether the run fails: any vulnerability, or any denied warning."""
        if report.vulnerabilities.found:
            return True
        denied, _allowed = self.count_warnings(report)
        return denied != 0

    def should_exit_with_failure_due_to_self(self, self_advisories: list[Advisory]) -> bool:
        return bool(self_advisories) and DenyOption.WARNINGS in self.config.deny

    def count_warnings(self, report: Report) -> tuple[int, int]:
        """Count warnings as ``(denied, allowed)``."""
        denied = allowed = 0
        for kind, warnings in report.warnings.items():
            if kind in self.deny_warning_kinds:
                denied += len(warnings)
            else:
                allowed += len(warnings)
        return denied, allowed

    @staticmethod
    def _warning_word(count: int) -> str:
        return "warning" if count == 1 else "warnings"

    def _warning_color(self, denied: bool) -> str:
        return RED if denied else YELLOW

    def _print_vulnerability(self, vulnerability: Vulnerability, tree: DependencyGraph) -> None:
        self.terminal.attr(RED, "Crate:    ", vulnerability.package.name)
        self.terminal.attr(RED, "Version:  ", vulnerability.package.version)
        self._print_metadata(vulnerability.advisory, RED)

        patched = vulnerability.versions.patched
        if patched:
            self.terminal.attr(RED, "Solution: ", f"Upgrade to {' OR '.join(patched)}")
        else:
            self.terminal.attr(RED, "Solution: ", "No fixed upgrade is available!")

        self._print_tree(RED, vulnerability.package, tree)
        self.terminal.echo()

    def _print_warning(self, warning: AdvisoryWarning, tree: DependencyGraph) -> None:
        color = self._warning_color(warning.kind in self.deny_warning_kinds)

        self.terminal.attr(color, "Crate:    ", warning.package.name)
        self.terminal.attr(color, "Version:  ", warning.package.version)
        self.terminal.attr(color, "Warning:  ", warning.kind.value)

        if warning.advisory is not None:
            self._print_metadata(warning.advisory, color)

        self._print_tree(color, warning.package, tree)
        self.terminal.echo()

    def _print_metadata(self, metadata: AdvisoryMetadata, color: str) -> None:
        self.terminal.attr(color, "Title:    ", metadata.title)
        self.terminal.attr(color, "Date:     ", metadata.date)
        self.terminal.attr(color, "ID:       ", metadata.id)

        url = select_url(metadata)
        if url is not None:
            self.terminal.attr(color, "URL:      ", url)

        severity = metadata.severity()
        if severity is not None:
            score, label = severity
            self.terminal.attr(color, "Severity: ", f"{score} ({label})")

    def _print_tree(self, color: str, package: Package, tree: DependencyGraph) -> None:
        """Print the inverse dependency tree, once per package."""
        key = package.key
        if key in self.displayed_packages:
            return
        self.displayed_packages.add(key)

        if self.config.show_tree is False:
            return

        rendered = render_tree(tree, key, EdgeDirection.INCOMING)
        self.terminal.attr(color, "Dependency tree:", "")
        self.terminal.echo(rendered)
