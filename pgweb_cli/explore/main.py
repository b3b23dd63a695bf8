"""pgweb-explore CLI entrypoint."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import click

from pgweb_cli.shared.cli import CLIContext, common_cli_options, handle_cli_errors, pass_cli_context
from pgweb_cli.shared.preferences import TABS

from . import render
from .actions import ACTIONS, DEFAULT_CAPABILITIES
from .controller import EXPORT_FORMATS, ExplorerController
from .filters import FILTER_TEMPLATES
from .session import SessionContext
from .types import OBJECT_KINDS, ObjectRef, ResultSet

OUTPUT_FORMAT_CHOICES = ("table", "tsv", "csv", "json")
SCHEMA_FORMAT_CHOICES = ("table", "json")

T = TypeVar("T")


@click.group(help="Browse and query a database through a pgweb server.")
@common_cli_options
@handle_cli_errors
def cli(cli_ctx: CLIContext) -> None:
    """Primary Click group for pgweb-explore commands."""
    cli_ctx.logger.debug(f"pgweb-explore targeting {cli_ctx.config.server.base_url}")


def _format_option(choices: tuple[str, ...] = OUTPUT_FORMAT_CHOICES) -> Callable[[Any], Any]:
    return click.option(
        "--format",
        "output_format",
        default="table",
        show_default=True,
        type=click.Choice(choices),
    )


def _kind_option() -> Callable[[Any], Any]:
    return click.option(
        "--kind",
        default="table",
        show_default=True,
        type=click.Choice(OBJECT_KINDS),
        help="Kind of the object; functions are addressed by their id.",
    )


@cli.command("schema")
@_format_option(SCHEMA_FORMAT_CHOICES)
@click.option("--all", "expand_all", is_flag=True, help="Expand every schema and group.")
@pass_cli_context
@handle_cli_errors
def show_schema(cli_ctx: CLIContext, output_format: str, expand_all: bool) -> None:
    """Display schemas and the objects they contain."""
    tree = _run(cli_ctx, lambda controller: controller.load_schema_tree())
    render.render_schema_tree(tree, output_format=output_format, logger=cli_ctx.logger, expand_all=expand_all)


@cli.command("rows")
@click.argument("name", type=str)
@_kind_option()
@click.option("--page", type=click.IntRange(min=1), default=1, show_default=True)
@click.option("--limit", type=click.IntRange(min=1), help="Rows per page for this command only.")
@click.option("--sort", "sort_column", type=str, help="Column to sort by.")
@click.option("--desc", is_flag=True, help="Sort descending.")
@click.option("--filter-column", type=str, help="Column to filter on.")
@click.option("--filter-op", type=click.Choice(tuple(FILTER_TEMPLATES)), help="Filter operator.")
@click.option("--filter-value", type=str, default="", help="Filter value (not used by null/not_null).")
@_format_option()
@pass_cli_context
@handle_cli_errors
def show_rows(
    cli_ctx: CLIContext,
    name: str,
    kind: str,
    page: int,
    limit: int | None,
    sort_column: str | None,
    desc: bool,
    filter_column: str | None,
    filter_op: str | None,
    filter_value: str,
    output_format: str,
) -> None:
    """Browse rows of a table, view or sequence."""
    if desc and not sort_column:
        raise click.UsageError("--desc requires --sort.")
    ref = ObjectRef(name=name, kind=kind)

    async def _browse(controller: ExplorerController) -> tuple[ResultSet, SessionContext]:
        controller.select_object(ref)
        session = controller.session
        if limit is not None:
            session.set_rows_limit(limit)
        if sort_column:
            session.set_sort(sort_column)
            if desc:
                session.set_sort(sort_column)
        if filter_column or filter_op:
            session.set_filter(filter_column or "", filter_op or "", filter_value)
        result = await controller.browse()
        if page > 1 and not result.is_error:
            result = await controller.go_to_page(page)
        return result, session

    result, session = _run(cli_ctx, _browse)
    _emit(cli_ctx, result, output_format, title=name)
    if output_format == "table":
        render.render_pagination(
            session.pagination, logger=cli_ctx.logger, sort=session.sort, where=session.where_clause()
        )


@cli.command("show")
@click.argument("name", type=str)
@click.argument("action", type=click.Choice(ACTIONS))
@click.option(
    "--kind",
    type=click.Choice(OBJECT_KINDS),
    help="Kind of the object; looked up in the schema tree when omitted.",
)
@_format_option()
@pass_cli_context
@handle_cli_errors
def show_object(cli_ctx: CLIContext, name: str, action: str, kind: str | None, output_format: str) -> None:
    """Show structure, indexes, constraints, info or a function definition."""
    if kind is not None and not DEFAULT_CAPABILITIES.supports(kind, action):
        available = ", ".join(DEFAULT_CAPABILITIES.actions_for(kind))
        raise click.UsageError(f"Action '{action}' is not available for {kind} objects. Available: {available}.")

    async def _show(controller: ExplorerController) -> ResultSet:
        ref = ObjectRef(name=name, kind=kind) if kind is not None else await controller.locate(name)
        return await controller.perform(ref, action)

    result = _run(cli_ctx, _show)
    _emit(cli_ctx, result, output_format, title=f"{name} {action}")


@cli.command("query")
@click.argument("sql", required=False, type=str)
@click.option("--file", "sql_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--cursor-row", type=click.IntRange(min=0), default=0, show_default=True,
              help="Zero-based row of the cursor; picks the blank-line separated block to run.")
@click.option("--selection", type=str, help="Explicit selection; overrides cursor resolution.")
@click.option("--explain", "mode", flag_value="explain", help="Run EXPLAIN for the statement.")
@click.option("--analyze", "mode", flag_value="analyze", help="Run EXPLAIN ANALYZE for the statement.")
@click.option("--export", "export_format", type=click.Choice(EXPORT_FORMATS), help="Fetch as an export file.")
@_format_option()
@pass_cli_context
@handle_cli_errors
def run_query(
    cli_ctx: CLIContext,
    sql: str | None,
    sql_file: Path | None,
    cursor_row: int,
    selection: str | None,
    mode: str | None,
    export_format: str | None,
    output_format: str,
) -> None:
    """Run SQL; without arguments the last query text is reused."""
    if sql_file is not None:
        buffer = sql_file.read_text(encoding="utf-8")
    elif sql is not None:
        buffer = sql
    else:
        buffer = cli_ctx.store.last_query_text()
        cli_ctx.logger.debug("Reusing last query text.")

    if export_format:
        exported = _run(cli_ctx, lambda controller: controller.export(selection or buffer.strip(), export_format))
        if isinstance(exported, ResultSet):
            raise click.ClickException(exported.error or "Export failed.")
        click.echo(exported, nl=False)
        return

    outcome = _run(
        cli_ctx,
        lambda controller: controller.run_query(
            buffer, selection=selection, cursor_row=cursor_row, mode=mode or "query"
        ),
    )
    render.render_statement(outcome.statement.text, outcome.statement.highlight, logger=cli_ctx.logger)
    if outcome.schema_refreshed:
        cli_ctx.logger.debug("Schema tree refreshed after schema change.")
    _emit(cli_ctx, outcome.result, output_format)


@cli.command("history")
@_format_option()
@pass_cli_context
@handle_cli_errors
def show_history(cli_ctx: CLIContext, output_format: str) -> None:
    """List queries executed in this backend session."""
    _emit(cli_ctx, _run(cli_ctx, lambda controller: controller.history()), output_format)


@cli.command("bookmarks")
@_format_option()
@pass_cli_context
@handle_cli_errors
def show_bookmarks(cli_ctx: CLIContext, output_format: str) -> None:
    """List connection bookmarks known to the server."""
    _emit(cli_ctx, _run(cli_ctx, lambda controller: controller.bookmarks()), output_format)


@cli.command("activity")
@_format_option()
@pass_cli_context
@handle_cli_errors
def show_activity(cli_ctx: CLIContext, output_format: str) -> None:
    """List running backend processes."""
    _emit(cli_ctx, _run(cli_ctx, lambda controller: controller.activity()), output_format)


@cli.command("databases")
@_format_option()
@pass_cli_context
@handle_cli_errors
def show_databases(cli_ctx: CLIContext, output_format: str) -> None:
    """List databases available on the connected server."""
    _emit(cli_ctx, _run(cli_ctx, lambda controller: controller.databases()), output_format)


@cli.command("connection")
@_format_option()
@pass_cli_context
@handle_cli_errors
def show_connection(cli_ctx: CLIContext, output_format: str) -> None:
    """Show details of the current connection."""
    _emit(cli_ctx, _run(cli_ctx, lambda controller: controller.connection_info()), output_format)


@cli.command("cancel")
@click.argument("pid", type=click.IntRange(min=1), required=False)
@click.option("--query", "query_text", type=str, help="Cancel active backends running exactly this text.")
@pass_cli_context
@handle_cli_errors
def cancel(cli_ctx: CLIContext, pid: int | None, query_text: str | None) -> None:
    """Cancel a running backend query (sends pg_cancel_backend as a new query)."""
    if pid is not None:
        result = _run(cli_ctx, lambda controller: controller.cancel_backend(pid))
        if result.is_error:
            raise click.ClickException(result.error or "Cancel failed.")
        cli_ctx.logger.success(f"Cancel requested for backend {pid}.")
        return

    cancelled = _run(cli_ctx, lambda controller: controller.cancel_running(query_text))
    if not cancelled:
        cli_ctx.logger.warning("No matching active queries.")
        return
    cli_ctx.logger.success(f"Cancel requested for backends: {', '.join(str(p) for p in cancelled)}.")


@cli.command("connect")
@click.option("--url", "connection_url", type=str, help="PostgreSQL connection URL.")
@click.option("--bookmark", "bookmark_id", type=str, help="Connect using a server-side bookmark.")
@click.option("--ssh-host", type=str)
@click.option("--ssh-port", type=str)
@click.option("--ssh-user", type=str)
@click.option("--ssh-password", type=str)
@click.option("--ssh-key", type=str)
@pass_cli_context
@handle_cli_errors
def connect(
    cli_ctx: CLIContext,
    connection_url: str | None,
    bookmark_id: str | None,
    ssh_host: str | None,
    ssh_port: str | None,
    ssh_user: str | None,
    ssh_password: str | None,
    ssh_key: str | None,
) -> None:
    """Connect the server session to a database."""
    ssh = {
        key: value
        for key, value in (
            ("host", ssh_host),
            ("port", ssh_port),
            ("user", ssh_user),
            ("password", ssh_password),
            ("key", ssh_key),
        )
        if value
    }
    database = _run(
        cli_ctx,
        lambda controller: controller.connect(url=connection_url, bookmark_id=bookmark_id, ssh=ssh or None),
    )
    cli_ctx.logger.success(f"Connected to {database}.")


@cli.command("disconnect")
@pass_cli_context
@handle_cli_errors
def disconnect(cli_ctx: CLIContext) -> None:
    """Close the server session's database connection."""
    _run(cli_ctx, lambda controller: controller.disconnect())
    cli_ctx.logger.success("Disconnected.")


@cli.command("switchdb")
@click.argument("database", type=str)
@pass_cli_context
@handle_cli_errors
def switch_db(cli_ctx: CLIContext, database: str) -> None:
    """Switch the connection to another database on the same server."""
    current = _run(cli_ctx, lambda controller: controller.switch_db(database))
    cli_ctx.logger.success(f"Switched to {current}.")


@cli.group("session")
def session_group() -> None:
    """Inspect or change durable client state."""


@session_group.command("show")
@pass_cli_context
@handle_cli_errors
def session_show(cli_ctx: CLIContext) -> None:
    """Print the persisted client state."""
    state = cli_ctx.store.load()
    result = ResultSet(
        columns=("key", "value"),
        rows=[
            ("sessionId", state.session_id or ""),
            ("rowsLimit", state.rows_limit),
            ("lastSelectedTab", state.last_selected_tab),
            ("lastQueryText", state.last_query_text),
        ],
    )
    _emit(cli_ctx, result, "table")


@session_group.command("reset")
@pass_cli_context
@handle_cli_errors
def session_reset(cli_ctx: CLIContext) -> None:
    """Start a new session id; the server treats it as a fresh session."""
    session_id = cli_ctx.store.reset_session_id()
    cli_ctx.logger.success(f"New session id: {session_id}")


@session_group.command("limit")
@click.argument("rows", type=int)
@pass_cli_context
@handle_cli_errors
def session_limit(cli_ctx: CLIContext, rows: int) -> None:
    """Persist the rows-per-page limit."""
    cli_ctx.store.set_rows_limit(rows)
    cli_ctx.logger.success(f"Rows per page set to {rows}.")


@session_group.command("tab")
@click.argument("tab", type=click.Choice(TABS))
@pass_cli_context
@handle_cli_errors
def session_tab(cli_ctx: CLIContext, tab: str) -> None:
    """Persist the last selected tab."""
    cli_ctx.store.set_last_selected_tab(tab)


def _build_controller(cli_ctx: CLIContext) -> ExplorerController:
    return ExplorerController.from_config(cli_ctx.config, cli_ctx.store)


def _run(cli_ctx: CLIContext, operation: Callable[[ExplorerController], Awaitable[T]]) -> T:
    """Run one controller operation on a fresh event loop and close the gateway."""

    async def _main() -> T:
        controller = _build_controller(cli_ctx)
        async with controller:
            return await operation(controller)

    return asyncio.run(_main())


def _emit(cli_ctx: CLIContext, result: ResultSet, output_format: str, *, title: str | None = None) -> None:
    if result.is_error:
        raise click.ClickException(result.error or "Request failed.")
    render.render_result(result, output_format=output_format, logger=cli_ctx.logger, title=title)


def main() -> None:
    """Entry point for console_scripts."""
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
