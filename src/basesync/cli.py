"""
Command-line interface for basesync.
"""

import asyncio
import re
import sys
from functools import wraps
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import AirtableConfig, BaseSyncConfig
from .context import SyncContext
from .exceptions import BaseSyncError
from .logging_setup import setup_logging
from .schema.delta import Delta
from .schema.models import SchemaDefinition
from .schema.reconciler import ReconciliationResult, ReconciliationStatus, SchemaReconciler
from .schema.report import SyncReport, generate_report
from .store import create_store


console = Console()


def handle_errors(func):
    """Decorator to handle errors gracefully in CLI commands."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except BaseSyncError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            sys.exit(1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted by user[/yellow]")
            sys.exit(0)
        except Exception as e:
            console.print(f"[red]Unexpected error:[/red] {escape(str(e))}")
            if "--debug" in sys.argv:
                import traceback
                traceback.print_exc()
            sys.exit(1)
    return wrapper


@click.group()
@click.version_option(__version__)
@click.option(
    "--debug", is_flag=True, help="Enable debug mode"
)
@click.pass_context
def main(ctx, debug):
    """basesync: additive Airtable schema synchronization."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


def _config_option(func):
    return click.option(
        "--config",
        "-c",
        type=click.Path(exists=True, dir_okay=False),
        help="Configuration file path",
    )(func)


def _api_key_option(func):
    return click.option(
        "--api-key",
        envvar="AIRTABLE_API_KEY",
        help="Airtable personal access token (defaults to $AIRTABLE_API_KEY)",
    )(func)


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="basesync.yaml",
    help="Output configuration file path",
)
@handle_errors
def init(output: str):
    """Initialize a new basesync configuration file."""
    if Path(output).exists():
        if not click.confirm(f"Configuration file {output} already exists. Overwrite?"):
            return

    _create_default_config().to_yaml(output)
    console.print(f"[green]✓[/green] Configuration file created: {escape(output)}")
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print("1. Export AIRTABLE_API_KEY (and AIRTABLE_WORKSPACE_ID for new bases)")
    console.print("2. Run: basesync validate-schema schema.json")
    console.print(f"3. Run: basesync sync schema.json --config {escape(output)}")


@main.command("validate-schema")
@click.argument("schema_file", type=click.Path(exists=True, dir_okay=False))
@handle_errors
def validate_schema(schema_file: str):
    """Validate a source schema file."""
    console.print(f"Validating schema: {escape(schema_file)}")

    source = SchemaDefinition.from_file(schema_file)
    source.validate_unique_names()

    console.print("[green]✓[/green] Schema is valid")
    _display_schema_summary(source)


@main.command()
@click.argument("schema_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--base-id", "-b", help="Existing base to update (omit to create a new base)")
@click.option("--create-new", is_flag=True, help="Create a new base even if --base-id is given")
@click.option("--dry-run", is_flag=True, help="Show what would be done without making changes")
@click.option(
    "--report-dir",
    type=click.Path(file_okay=False),
    help="Directory to write JSON and Markdown reports to",
)
@_config_option
@_api_key_option
@click.pass_context
@handle_errors
def sync(
    ctx,
    schema_file: str,
    base_id: Optional[str],
    create_new: bool,
    dry_run: bool,
    report_dir: Optional[str],
    config: Optional[str],
    api_key: Optional[str],
):
    """Synchronize a base with a source schema."""
    settings = _load_settings(ctx, config, api_key)
    source = SchemaDefinition.from_file(schema_file)

    console.print("[blue]Starting Airtable schema synchronization...[/blue]")
    if dry_run:
        console.print("[yellow]Dry run mode - no changes will be made[/yellow]")

    result, context = asyncio.run(
        _run_reconcile(settings, source, base_id, create_new, dry_run)
    )

    if result.status == ReconciliationStatus.DRY_RUN:
        if result.delta is not None:
            _display_delta(result.delta)
        else:
            console.print(
                f"Would create a new base with {len(source.tables)} tables "
                f"and {source.total_fields()} fields"
            )
        return

    report = generate_report(result.changes, result.destination_id)
    _display_result(result, report)

    report_dir = report_dir or settings.sync.report_dir
    if report_dir:
        json_path, markdown_path = report.write(
            report_dir, _slugify(source.name or result.destination_id or "base")
        )
        console.print(f"JSON report: {escape(str(json_path))}")
        console.print(f"Markdown report: {escape(str(markdown_path))}")

    _display_metrics(context)

    if result.failed_fields:
        console.print(
            f"\n[yellow]Synchronization incomplete: {len(result.failed_fields)} "
            f"fields could not be added[/yellow]"
        )
        sys.exit(1)

    console.print("\n[green]✓ Synchronization complete![/green]")


@main.command()
@click.argument("schema_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--base-id", "-b", required=True, help="Base to compare against")
@_config_option
@_api_key_option
@click.pass_context
@handle_errors
def diff(ctx, schema_file: str, base_id: str, config: Optional[str], api_key: Optional[str]):
    """Show the changes a sync would apply to a base."""
    settings = _load_settings(ctx, config, api_key)
    source = SchemaDefinition.from_file(schema_file)

    result, _ = asyncio.run(
        _run_reconcile(settings, source, base_id, False, dry_run=True)
    )
    _display_delta(result.delta)


@main.command()
@click.argument("schema_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--base-id", "-b", required=True, help="Base to verify")
@_config_option
@_api_key_option
@click.pass_context
@handle_errors
def verify(ctx, schema_file: str, base_id: str, config: Optional[str], api_key: Optional[str]):
    """Verify that a base contains every table and field of a schema."""
    settings = _load_settings(ctx, config, api_key)
    source = SchemaDefinition.from_file(schema_file)

    console.print(f"Verifying base {escape(base_id)} against {escape(schema_file)}")
    result, _ = asyncio.run(
        _run_reconcile(settings, source, base_id, False, dry_run=True)
    )

    if result.delta is None or not result.delta.has_changes:
        console.print(f"[green]✓[/green] Base {escape(base_id)} is up to date")
        return

    console.print(
        f"[red]✗[/red] Base {escape(base_id)} is missing {result.delta.total_changes} "
        f"tables/fields"
    )
    _display_delta(result.delta)
    sys.exit(1)


async def _run_reconcile(
    settings: BaseSyncConfig,
    source: SchemaDefinition,
    base_id: Optional[str],
    create_new: bool,
    dry_run: bool,
) -> Tuple[ReconciliationResult, SyncContext]:
    context = SyncContext.create()
    async with create_store(settings) as store:
        reconciler = SchemaReconciler(
            store,
            context=context,
            color_palette=settings.sync.color_palette,
            workspace_id=settings.airtable.workspace_id,
            base_name_prefix=settings.sync.base_name_prefix,
        )
        result = await reconciler.reconcile(
            source,
            destination_id=base_id,
            force_create=create_new,
            dry_run=dry_run,
        )
    return result, context


def _load_settings(ctx, config: Optional[str], api_key: Optional[str]) -> BaseSyncConfig:
    """Load configuration, apply overrides and configure logging."""
    settings = BaseSyncConfig.from_yaml(config) if config else BaseSyncConfig()
    settings.apply_environment_fallbacks()
    if api_key:
        settings.airtable.api_key = api_key
    settings.require_api_key()

    debug = bool(ctx.obj and ctx.obj.get("debug")) or settings.debug
    setup_logging(settings.logging, debug=debug)
    return settings


def _slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-") or "base"


def _create_default_config() -> BaseSyncConfig:
    """Create a default configuration with environment placeholders."""
    return BaseSyncConfig(
        airtable=AirtableConfig(
            api_key="${AIRTABLE_API_KEY}",
            workspace_id="${AIRTABLE_WORKSPACE_ID}",
        ),
    )


def _display_schema_summary(source: SchemaDefinition):
    """Display a summary of a source schema."""
    table = Table(title=escape(source.name or "Source Schema"))
    table.add_column("Table", style="cyan")
    table.add_column("Fields", style="yellow")
    table.add_column("Description", style="green")

    for source_table in source.tables:
        table.add_row(
            escape(source_table.name),
            str(len(source_table.fields)),
            escape(source_table.description or ""),
        )

    console.print(table)
    console.print(f"Tables: {len(source.tables)}  Fields: {source.total_fields()}")


def _display_delta(delta: Optional[Delta]):
    """Display pending changes."""
    if delta is None or not delta.has_changes:
        console.print("[green]✓[/green] Base is already up to date")
        return

    table = Table(title=f"Pending Changes ({delta.total_changes})")
    table.add_column("Change", style="cyan")
    table.add_column("Table", style="magenta")
    table.add_column("Field", style="green")
    table.add_column("Type", style="yellow")

    for new_table in delta.tables_to_create:
        table.add_row(
            "create table", escape(new_table.name), f"{len(new_table.fields)} fields", ""
        )
    for update in delta.tables_to_update:
        for missing in update.fields:
            table.add_row(
                "add field",
                escape(update.table_name),
                escape(missing.name),
                missing.type.value,
            )

    console.print(table)


def _display_result(result: ReconciliationResult, report: SyncReport):
    """Display the applied changes of a run."""
    console.print(f"\nBase: [yellow]{escape(str(result.destination_id))}[/yellow]")
    if result.status == ReconciliationStatus.SKIPPED:
        console.print("[green]✓[/green] Base is already up to date")

    if report.total_changes:
        table = Table(title="Schema Sync Report")
        table.add_column("Change", style="cyan")
        table.add_column("Item", style="green")

        for change_type, records in report.groups.items():
            for record in records:
                table.add_row(change_type.value, escape(record.describe()))

        console.print(table)
        for change_type, count in report.counts.items():
            console.print(f"  {change_type.value}: {count}")

    console.print(f"Total changes: {report.total_changes}")

    if result.failed_fields:
        failed = Table(title="Skipped Fields")
        failed.add_column("Table", style="magenta")
        failed.add_column("Field", style="red")
        failed.add_column("Error")
        for outcome in result.failed_fields:
            failed.add_row(
                escape(outcome.table_name),
                escape(outcome.field.name),
                escape(str(outcome.error.cause)),
            )
        console.print(failed)


def _display_metrics(context: SyncContext):
    snapshot = context.metrics.snapshot()
    console.print(
        f"[dim]Store calls: {snapshot['store_calls']}, "
        f"elapsed: {snapshot['elapsed_ms']:.0f}ms[/dim]"
    )


if __name__ == "__main__":
    main()
