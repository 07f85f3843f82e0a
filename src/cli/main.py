"""Main CLI entry point for the notion-sync command.

This module provides the Typer application that serves as the entry point
for the notion-sync command-line tool. Global options (--config, -v,
--logdir, --no-color) go before the subcommand.
"""

import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
from rich.text import Text
from rich.tree import Tree

from src.cli.app_context import AppContext
from src.cli.errors import CLIError, InitError
from src.cli.init_command import InitCommand
from src.cli.models import ExitCode, SyncSummary
from src.cli.output import OutputHandler
from src.config.config_loader import DEFAULT_CONFIG_PATH
from src.config.errors import ConfigError
from src.content_converter.markdown_preview import html_to_markdown
from src.content_converter.property_formatter import display_value
from src.hierarchy.models import HierarchyNode
from src.notion_api.errors import ConversionError, InvalidCredentialsError
from src.registry.identity import IdentityNormalizer
from src.registry.models import SyncStatus
from src.router.web import create_app
from src.storage.errors import StorageError
from src.storage.models import BatchStatus

app = typer.Typer(
    name="notion-sync",
    help="""One-way sync from Notion into a local content store.

QUICK START:
  notion-sync init --site-url https://example.com   # Create config and database
  notion-sync sync <notion-page-id>                  # Sync a page now
  notion-sync database sync <notion-database-id>     # Sync a database and its entries
  notion-sync batch schedule <id> <id> ...           # Queue a bulk sync job
  notion-sync serve                                  # Serve /notion/<slug> redirects""",
    add_completion=False,
    rich_markup_mode=None,
    no_args_is_help=True,
)
batch_app = typer.Typer(help="Schedule, run and inspect bulk sync jobs.", no_args_is_help=True)
menu_app = typer.Typer(help="Navigation menu built from the Notion page tree.", no_args_is_help=True)
database_app = typer.Typer(help="Sync and inspect Notion databases.", no_args_is_help=True)
app.add_typer(batch_app, name="batch")
app.add_typer(menu_app, name="menu")
app.add_typer(database_app, name="database")

# Module logger
logger = logging.getLogger(__name__)

API_UNREACHABLE_MARKER = "API is not available"


@dataclass
class CLIState:
    """Global options shared by every subcommand."""
    config_path: str = DEFAULT_CONFIG_PATH
    verbosity: int = 0
    no_color: bool = False


def _configure_logging(verbosity: int, logdir: Optional[str] = None) -> None:
    """Configure logging based on verbosity level.

    Configures only the 'src' namespace logger to avoid affecting third-party
    libraries. The root logger is left unchanged.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2=DEBUG)
        logdir: Optional directory for log files (creates timestamped log file)
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:  # verbosity >= 2
        level = logging.DEBUG

    app_logger = logging.getLogger("src")
    app_logger.setLevel(level)
    app_logger.handlers.clear()

    log_format = "%(asctime)s [%(levelname)8s] %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(log_format, datefmt=date_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    if logdir:
        log_path = Path(logdir)
        log_path.mkdir(parents=True, exist_ok=True)

        # Local time, so file names match the user's clock
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"notion-sync_{timestamp}.log"

        file_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        file_formatter = logging.Formatter(file_format, datefmt=date_format)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        app_logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")


def _build_context(config_path: str) -> AppContext:
    return AppContext.from_config_file(config_path)


def _output(ctx: typer.Context) -> OutputHandler:
    state: CLIState = ctx.obj
    return OutputHandler(verbosity=state.verbosity, no_color=state.no_color)


def _load_context(ctx: typer.Context, output: OutputHandler) -> AppContext:
    state: CLIState = ctx.obj
    try:
        return _build_context(state.config_path)
    except (CLIError, ConfigError) as e:
        output.error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)


def _check_credentials(context: AppContext, output: OutputHandler) -> None:
    """Fail fast with AUTH_ERROR when NOTION_TOKEN is missing."""
    if context.authenticator is None:
        return
    try:
        context.authenticator.get_credentials()
    except InvalidCredentialsError as e:
        output.error(str(e))
        output.print("Set NOTION_TOKEN in the environment or in a .env file.")
        raise typer.Exit(ExitCode.AUTH_ERROR)


def _summary_exit_code(summary: SyncSummary) -> ExitCode:
    if (
        summary.synced_count == 0
        and summary.errors
        and all(API_UNREACHABLE_MARKER in message for message in summary.errors.values())
    ):
        return ExitCode.NETWORK_ERROR
    return summary.exit_code


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    config: str = typer.Option(
        DEFAULT_CONFIG_PATH,
        "--config",
        "-c",
        help="Path to the configuration file",
    ),
    verbosity: int = typer.Option(
        0,
        "--verbosity",
        "-v",
        help="Verbosity level: 0=summary, 1=info, 2=debug",
    ),
    logdir: Optional[str] = typer.Option(
        None,
        "--logdir",
        help="Directory for log files (creates timestamped log file)",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
    ),
) -> None:
    """One-way sync from Notion into a local content store."""
    if version:
        typer.echo("notion-sync version 0.1.0")
        raise typer.Exit()

    _configure_logging(verbosity, logdir)
    ctx.obj = CLIState(config_path=config, verbosity=verbosity, no_color=no_color)

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command()
def init(
    ctx: typer.Context,
    site_url: str = typer.Option(
        "http://localhost:8000",
        "--site-url",
        help="Base URL of the local site, used for permalinks",
    ),
    database: Optional[str] = typer.Option(
        None,
        "--db",
        help="SQLite database path (default: next to the config file)",
    ),
    prefix: str = typer.Option(
        "notion",
        "--prefix",
        help="First path segment of public Notion links",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite an existing configuration",
    ),
) -> None:
    """Create the configuration file and the database."""
    output = _output(ctx)
    state: CLIState = ctx.obj
    init_cmd = InitCommand(config_path=state.config_path)

    try:
        config = init_cmd.run(site_url=site_url, database_path=database, prefix=prefix, force=force)
    except InitError as e:
        logger.error(f"Initialization failed: {e}")
        output.error(f"Initialization failed: {e}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    output.success("Configuration initialized successfully")
    output.print(f"  Config file: {init_cmd.config_path}")
    output.print(f"  Database: {config.database_path}")
    output.print("")
    output.print("Next steps:")
    output.print("  1. Set NOTION_TOKEN in your environment or .env file")
    output.print("  2. Run 'notion-sync sync <notion-page-id>'")


@app.command()
def sync(
    ctx: typer.Context,
    remote_ids: List[str] = typer.Argument(..., metavar="NOTION_ID...", help="Notion page ids or share-link ids"),
) -> None:
    """Sync Notion pages now, one after another."""
    output = _output(ctx)
    context = _load_context(ctx, output)
    _check_credentials(context, output)

    summary = SyncSummary()
    with output.progress_bar(len(remote_ids), "Syncing pages") as progress:
        task = progress.add_task("Syncing pages", total=len(remote_ids))

        def on_progress(done, total, remote_id, result):
            progress.update(task, completed=done)

        results = context.orchestrator.sync_many(remote_ids, progress_callback=on_progress)

    for remote_id, result in results.items():
        if result.success:
            summary.synced_count += 1
            output.info(f"Synced {remote_id} → local record {result.local_content_id}")
        else:
            summary.failed_count += 1
            summary.errors[remote_id] = result.error or "Unknown error"

    output.print_summary(summary)
    raise typer.Exit(_summary_exit_code(summary))


@app.command()
def status(
    ctx: typer.Context,
    remote_ids: List[str] = typer.Argument(..., metavar="NOTION_ID...", help="Notion page ids"),
) -> None:
    """Show the composite sync status of Notion pages."""
    output = _output(ctx)
    context = _load_context(ctx, output)

    statuses = context.status_resolver.statuses_for(remote_ids)
    if len(statuses) < len(set(remote_ids)):
        output.warning("Some ids were skipped because they are empty or malformed")

    rows = [
        [remote_id, s.label, s.local_content_id, s.tooltip]
        for remote_id, s in statuses.items()
    ]
    output.print_table("Sync status", ["Notion ID", "Status", "Local ID", "Details"], rows)


@app.command()
def links(
    ctx: typer.Context,
    status_filter: Optional[str] = typer.Option(
        None,
        "--status",
        help="Only show entries with this status (synced or not_synced)",
    ),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum number of entries"),
) -> None:
    """List link registry entries."""
    output = _output(ctx)
    context = _load_context(ctx, output)

    status_value = None
    if status_filter:
        try:
            status_value = SyncStatus(status_filter)
        except ValueError:
            output.error(f"Invalid status '{status_filter}'. Use 'synced' or 'not_synced'.")
            raise typer.Exit(ExitCode.GENERAL_ERROR)

    entries = context.registry.list_entries(status=status_value, limit=limit)
    if not entries:
        output.warning("No links registered")
        return

    rows = [
        [e.slug, e.remote_title, e.remote_id_compact, e.sync_status.value, e.local_content_id, e.access_count]
        for e in entries
    ]
    output.print_table("Link registry", ["Slug", "Title", "Notion ID", "Status", "Local ID", "Hits"], rows)


@app.command()
def show(
    ctx: typer.Context,
    remote_id: str = typer.Argument(..., metavar="NOTION_ID", help="Notion page id"),
) -> None:
    """Print a synced page as Markdown."""
    output = _output(ctx)
    context = _load_context(ctx, output)

    entry = context.registry.find_by_remote_id(remote_id)
    if entry is None or not entry.local_content_id:
        output.error(f"Page {remote_id} has not been synced")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    content = context.content_store.get(entry.local_content_id)
    if content is None:
        output.error(f"Local record {entry.local_content_id} for {remote_id} no longer exists")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    try:
        markdown = html_to_markdown(content.body)
    except ConversionError as e:
        output.error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    output.print(f"# {content.title}\n\n{markdown}")


@app.command()
def search(
    ctx: typer.Context,
    query: str = typer.Argument("", help="Text to search for in page titles"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum number of pages"),
) -> None:
    """List Notion pages shared with the integration."""
    output = _output(ctx)
    context = _load_context(ctx, output)
    _check_credentials(context, output)

    with output.spinner("Searching Notion..."):
        result = context.fetcher.search_pages(query, limit=limit)

    if not result.ok:
        output.error(f"Search failed: {result.error}")
        code = ExitCode.NETWORK_ERROR if API_UNREACHABLE_MARKER in (result.error or "") else ExitCode.GENERAL_ERROR
        raise typer.Exit(code)
    if not result.data:
        output.warning("No pages found")
        return

    rows = []
    for page in result.data:
        entry = context.registry.find_by_remote_id(page.id)
        rows.append([
            IdentityNormalizer.compact(page.id),
            page.title,
            page.last_edited_time,
            entry.sync_status.value if entry else None,
        ])
    output.print_table("Notion pages", ["Notion ID", "Title", "Last edited", "Status"], rows)


@app.command(name="log")
def show_log(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-n", help="Number of records to show"),
    remote_id: Optional[str] = typer.Option(None, "--page", help="Only records for this Notion id"),
    unresolved: bool = typer.Option(False, "--unresolved", help="Only unresolved records"),
) -> None:
    """Show recent sync log records."""
    output = _output(ctx)
    context = _load_context(ctx, output)

    if remote_id:
        remote_id = IdentityNormalizer.compact(remote_id)
    entries = context.sync_log.recent(limit=limit, remote_id=remote_id, unresolved_only=unresolved)
    if not entries:
        output.warning("No sync log records")
        return

    rows = [
        [
            e.created_at.strftime("%Y-%m-%d %H:%M:%S") if e.created_at else None,
            e.severity,
            e.category,
            e.remote_id,
            e.message,
        ]
        for e in entries
    ]
    output.print_table("Sync log", ["Time", "Severity", "Category", "Notion ID", "Message"], rows)


@app.command()
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default from config)"),
    port: Optional[int] = typer.Option(None, "--port", help="Port (default from config)"),
) -> None:
    """Serve slug redirects and the sync status endpoint."""
    output = _output(ctx)
    context = _load_context(ctx, output)

    bind_host = host or context.config.server.host
    bind_port = port or context.config.server.port
    output.success(f"Serving /{context.config.router.prefix}/<slug> on http://{bind_host}:{bind_port}")
    create_app(context).run(host=bind_host, port=bind_port)


@app.command()
def relink(ctx: typer.Context) -> None:
    """Rewrite links to Notion pages in every synced body to their current paths."""
    output = _output(ctx)
    context = _load_context(ctx, output)

    try:
        updated = context.link_updater.update_all_links()
    except StorageError as e:
        output.error(f"Link update failed: {e}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if updated:
        output.success(f"Updated links in {updated} record(s)")
    else:
        output.print("All links are up to date")


@app.command()
def media(ctx: typer.Context) -> None:
    """Show how many images were imported, skipped or failed."""
    output = _output(ctx)
    context = _load_context(ctx, output)

    counts = context.media_store.stats()
    rows = [[status, count] for status, count in counts.items()]
    output.print_table("Imported media", ["Status", "Files"], rows)
    output.print(f"Media directory: {context.config.media.directory}")


@database_app.command("sync")
def database_sync(
    ctx: typer.Context,
    remote_id: str = typer.Argument(..., metavar="NOTION_ID", help="Notion database id"),
) -> None:
    """Sync a Notion database: store its entries and write the record listing them."""
    output = _output(ctx)
    context = _load_context(ctx, output)
    _check_credentials(context, output)

    with output.spinner(f"Syncing database {remote_id}..."):
        result = context.orchestrator.sync_database(remote_id)

    summary = SyncSummary()
    if result.success:
        summary.synced_count = 1
        entries = context.row_store.count(IdentityNormalizer.compact(remote_id))
        output.info(f"Synced {remote_id} → local record {result.local_content_id} ({entries} entries)")
    else:
        summary.failed_count = 1
        summary.errors[remote_id] = result.error or "Unknown error"

    output.print_summary(summary)
    raise typer.Exit(_summary_exit_code(summary))


@database_app.command("rows")
def database_rows(
    ctx: typer.Context,
    remote_id: str = typer.Argument(..., metavar="NOTION_ID", help="Notion database id"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum number of entries"),
) -> None:
    """List the stored entries of a synced database."""
    output = _output(ctx)
    context = _load_context(ctx, output)

    rows = context.row_store.list_rows(IdentityNormalizer.compact(remote_id), limit=limit)
    if not rows:
        output.warning(f"No entries stored for database {remote_id}")
        return

    columns: List[str] = []
    for row in rows:
        for name in row.properties:
            if name not in columns:
                columns.append(name)
    table = [
        [row.row_id] + [display_value(row.properties.get(name)) for name in columns]
        for row in rows
    ]
    output.print_table("Database entries", ["Notion ID"] + columns, table)


@batch_app.command("schedule")
def batch_schedule(
    ctx: typer.Context,
    remote_ids: List[str] = typer.Argument(..., metavar="NOTION_ID...", help="Notion page ids"),
) -> None:
    """Queue a bulk sync job and print its id."""
    output = _output(ctx)
    context = _load_context(ctx, output)

    try:
        batch_id = context.batch_worker.schedule(remote_ids)
    except (ValueError, StorageError) as e:
        output.error(f"Failed to schedule batch: {e}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    output.success(f"Scheduled {batch_id}")
    output.print(f"Run it with: notion-sync batch run {batch_id}")


@batch_app.command("run")
def batch_run(
    ctx: typer.Context,
    batch_id: str = typer.Argument(..., help="Batch id from 'batch schedule'"),
) -> None:
    """Process a queued batch until it completes or is cancelled."""
    output = _output(ctx)
    context = _load_context(ctx, output)
    _check_credentials(context, output)

    try:
        with output.spinner(f"Running {batch_id}..."):
            batch = context.batch_worker.run(batch_id)
    except StorageError as e:
        output.error(f"Batch {batch_id} aborted: {e}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if batch is None:
        output.error(f"Batch {batch_id} not found")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    _print_batch(output, batch)
    summary = SyncSummary(
        synced_count=batch.successful,
        failed_count=batch.failed,
        errors={k: v.get('error', '') for k, v in batch.results.items() if not v.get('success')},
    )
    raise typer.Exit(_summary_exit_code(summary))


@batch_app.command("status")
def batch_status(
    ctx: typer.Context,
    batch_id: Optional[str] = typer.Argument(None, help="Batch id (default: the active batch)"),
) -> None:
    """Show progress of a batch."""
    output = _output(ctx)
    context = _load_context(ctx, output)

    batch_id = batch_id or context.batch_worker.active_batch_id()
    if not batch_id:
        output.warning("No active batch")
        return

    batch = context.batch_worker.get_progress(batch_id)
    if batch is None:
        output.error(f"Batch {batch_id} not found")
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    _print_batch(output, batch)


@batch_app.command("cancel")
def batch_cancel(
    ctx: typer.Context,
    batch_id: str = typer.Argument(..., help="Batch id"),
) -> None:
    """Cancel a queued or running batch. Finished items keep their results."""
    output = _output(ctx)
    context = _load_context(ctx, output)

    if not context.batch_worker.cancel(batch_id):
        output.error(f"Batch {batch_id} not found or already finished")
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    output.success(f"Cancelled {batch_id}")


@menu_app.command("sync")
def menu_sync(ctx: typer.Context) -> None:
    """Rebuild the navigation menu from all synced pages."""
    output = _output(ctx)
    context = _load_context(ctx, output)

    try:
        menu_id = context.navigation_sync.sync_navigation()
    except StorageError as e:
        output.error(f"Menu sync failed: {e}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if menu_id is None:
        output.warning("No synced pages, menu left unchanged")
        return
    output.success(f"Menu '{context.config.menu.name}' synced (id {menu_id})")


@menu_app.command("tree")
def menu_tree(ctx: typer.Context) -> None:
    """Print the page tree rebuilt from synced pages."""
    output = _output(ctx)
    context = _load_context(ctx, output)

    forest = context.hierarchy_builder.build_forest()
    if not forest:
        output.warning("No synced pages")
        return

    tree = Tree(Text("Notion pages", style="bold"))
    for root in forest:
        _add_tree_node(tree, root)
    output.print_tree(tree)


def _add_tree_node(parent: Tree, node: HierarchyNode) -> None:
    branch = parent.add(Text(f"{node.title}  ({node.remote_id} → {node.local_id})"))
    for child in node.children:
        _add_tree_node(branch, child)


def _print_batch(output: OutputHandler, batch: BatchStatus) -> None:
    output.print(
        f"{batch.batch_id}: {batch.status.value} "
        f"({batch.processed}/{batch.total}, {batch.percentage}%, "
        f"{batch.successful} ok, {batch.failed} failed)"
    )
    if batch.error:
        output.warning(f"Reason: {batch.error}")

    rows = []
    for item_id in batch.item_ids:
        result = batch.results.get(item_id, {})
        item_state = batch.per_item_status.get(item_id)
        rows.append([
            item_id,
            item_state.value if item_state else None,
            result.get('local_content_id'),
            result.get('error'),
        ])
    output.print_table("Batch items", ["Notion ID", "State", "Local ID", "Error"], rows)


def main() -> None:
    """Main entry point for the CLI application.

    This function is called when the module is executed directly or
    when the console script is invoked.
    """
    app()


# Allow running as: python -m src.cli.main
if __name__ == "__main__":
    main()
