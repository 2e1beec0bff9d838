"""AsyncClick CLI for presenting audits and maintaining advisories.

Provides user-facing commands:
- present: Print a ``cargo audit --json`` report and set the exit status
- list-affected-versions: Show which published versions an advisory affects
- osv: Export the advisory database as OSV JSON files
"""

import logging
import sys
from pathlib import Path

import asyncclick as click
import structlog

from lockaudit import __version__
from lockaudit.core.affected import AffectedVersionLister
from lockaudit.core.config import OutputFormat, load_config, load_output_config
from lockaudit.core.database import Database
from lockaudit.core.errors import AuditError, DataError
from lockaudit.core.lockfile import Lockfile
from lockaudit.core.models import Report
from lockaudit.core.policy import parse_deny_options
from lockaudit.core.presenter import Presenter
from lockaudit.core.terminal import Terminal
from lockaudit.tools.advisory_db import fetch_advisory_db
from lockaudit.tools.crates_index import CratesIndex
from lockaudit.tools.osv import OsvExporter

logger = structlog.get_logger()

SELF_PACKAGE = "lockaudit"


def configure_logging(verbose: bool) -> None:
    """Send structured logs to stderr so stdout only carries the report."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.WARNING
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def fail(ctx, message: str) -> None:
    """Report a fatal error and exit with status 1."""
    click.echo(f"{click.style('error:', fg='red', bold=True)} {message}", err=True)
    ctx.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log debug events to stderr")
@click.version_option(__version__, prog_name="lockaudit")
@click.pass_context
async def cli(ctx, verbose: bool):
    """lockaudit - Cargo.lock security advisory auditor"""
    ctx.ensure_object(dict)
    configure_logging(verbose)


@cli.command()
@click.argument("report_path", metavar="REPORT", type=click.Path(exists=True, dir_okay=False))
@click.option("--lockfile", "-f", "lockfile_path", default="Cargo.lock", show_default=True,
              type=click.Path(dir_okay=False), help="Cargo.lock the report was computed from")
@click.option("--format", "output_format", default=None,
              type=click.Choice([f.value for f in OutputFormat]), help="Output format")
@click.option("--deny", "-D", multiple=True,
              help="Treat warnings of this kind as failures (warnings, unmaintained, unsound, yanked)")
@click.option("--no-tree", is_flag=True, help="Don't print inverse dependency trees")
@click.option("--quiet", "-q", is_flag=True, help="Suppress status lines")
@click.option("--color/--no-color", default=None, help="Force colored output on or off")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False),
              help="audit.toml with an [output] table")
@click.option("--db", "db_path", default=None, type=click.Path(exists=True, file_okay=False),
              help="Advisory database checkout, used to check lockaudit itself")
@click.pass_context
async def present(
    ctx,
    report_path: str,
    lockfile_path: str,
    output_format: str | None,
    deny: tuple[str, ...],
    no_tree: bool,
    quiet: bool,
    color: bool | None,
    config_path: str | None,
    db_path: str | None,
):
    """Present an audit report and exit non-zero if it fails.

    Examples:
        cargo audit --json > report.json
        lockaudit present report.json
        lockaudit present report.json -D warnings --no-tree
    """
    try:
        output_config = load_output_config(
            config_path,
            format=output_format,
            deny=parse_deny_options(deny) if deny else None,
            show_tree=False if no_tree else None,
            quiet=True if quiet else None,
            color=color,
        )
        report = Report.load(report_path)
        presenter = Presenter(output_config)

        lockfile = None
        if output_config.format == OutputFormat.TERMINAL:
            lockfile = Lockfile.load(lockfile_path)
            presenter.before_report(lockfile_path, lockfile)

        self_advisories = []
        if db_path is not None:
            self_advisories = Database.open(db_path).query(SELF_PACKAGE, __version__)

        presenter.print_report(report, lockfile)
        if output_config.format == OutputFormat.TERMINAL:
            presenter.print_self_report(self_advisories)
        elif self_advisories:
            ids = [a.id for a in self_advisories]
            if presenter.should_exit_with_failure_due_to_self(self_advisories):
                logger.error("self_advisories_found", ids=ids)
            else:
                logger.warning("self_advisories_found", ids=ids)

        failed = presenter.should_exit_with_failure(
            report
        ) or presenter.should_exit_with_failure_due_to_self(self_advisories)

    except AuditError as e:
        logger.error("present_failed", error=str(e))
        fail(ctx, str(e))
        return

    if failed:
        ctx.exit(1)


@cli.command("list-affected-versions")
@click.option("--db", "db_path", default=None, type=click.Path(exists=True, file_okay=False),
              help="Advisory database checkout (default: download)")
@click.option("--id", "advisory_id", default=None, help="Only this advisory")
@click.pass_context
async def list_affected_versions(ctx, db_path: str | None, advisory_id: str | None):
    """List affected and unaffected versions of crates with advisories.

    Examples:
        lockaudit list-affected-versions --db ./advisory-db
        lockaudit list-affected-versions --db ./advisory-db --id RUSTSEC-2019-0009
    """
    config = load_config()
    try:
        if db_path is None:
            db_path = await fetch_advisory_db(config)
        database = Database.open(db_path)
        lister = AffectedVersionLister(CratesIndex(config), database, Terminal())

        if advisory_id is None:
            await lister.process_all_advisories()
        else:
            advisory = database.get(advisory_id)
            if advisory is None:
                raise DataError(f"advisory {advisory_id} not found")
            await lister.process_one_advisory(advisory)

    except AuditError as e:
        logger.error("list_affected_versions_failed", error=str(e))
        fail(ctx, str(e))


@cli.command()
@click.option("--db", "db_path", default=None, type=click.Path(exists=True, file_okay=False),
              help="Advisory database checkout (default: download)")
@click.argument("out_dir", required=False, default=".", type=click.Path(file_okay=False))
@click.pass_context
async def osv(ctx, db_path: str | None, out_dir: str):
    """Export all advisories to OSV JSON files in OUT_DIR.

    Example:
        lockaudit osv --db ./advisory-db ./osv
    """
    try:
        exporter = await OsvExporter.open(db_path, load_config())
    except AuditError as e:
        fail(ctx, f"Failed to fetch the advisory database: {e}")
        return

    try:
        count = exporter.export_all(Path(out_dir))
    except (AuditError, OSError) as e:
        fail(ctx, f"failed to export to '{out_dir}': {e}")
        return

    Terminal().status_ok("Exported", f"{count} advisories to {out_dir}")
