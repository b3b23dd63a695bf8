"""Output rendering helpers for pgweb-explore."""

from __future__ import annotations

import csv
import json
import sys
from typing import IO

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from pgweb_cli.shared.logging import Logger

from .types import OBJECT_KINDS, PaginationState, ResultSet, SchemaTree, SortState, StatementChunk

KIND_LABELS = {
    "table": "Tables",
    "view": "Views",
    "materialized_view": "Materialized Views",
    "function": "Functions",
    "sequence": "Sequences",
}


def render_result(
    result: ResultSet,
    *,
    output_format: str,
    logger: Logger,
    stream=None,
    title: str | None = None,
) -> None:
    """Render a result set to the desired format; errors go to the logger."""
    output_stream = stream or sys.stdout
    if result.is_error:
        logger.error(f"Error: {result.error}")
        return

    fmt = (output_format or "table").lower()
    if fmt == "table":
        _render_table(result, logger=logger, stream=output_stream, title=title)
    elif fmt == "csv":
        _render_delimited(result, stream=output_stream, delimiter=",")
    elif fmt == "tsv":
        _render_delimited(result, stream=output_stream, delimiter="\t")
    elif fmt == "json":
        _render_json(result, stream=output_stream)
    else:  # pragma: no cover - Click validation should prevent this
        raise ValueError(f"Unsupported output format '{output_format}'.")

    if result.stats is not None and result.stats.query_duration_ms is not None:
        logger.info(f"{result.stats.rows_count} rows in {result.stats.query_duration_ms:g} ms")


def render_pagination(
    state: PaginationState,
    *,
    logger: Logger,
    sort: SortState | None = None,
    where: str | None = None,
) -> None:
    """Summarise the browsing position below a rows listing."""
    parts = [f"Page {state.page} of {state.total_pages}", f"{state.total_rows} rows", f"{state.page_size} per page"]
    if sort is not None:
        parts.append(f"sorted by {sort.column} {sort.order}")
    if where:
        parts.append(f"where {where}")
    logger.info(" · ".join(parts))


def render_schema_tree(
    tree: SchemaTree,
    *,
    output_format: str,
    logger: Logger,
    stream=None,
    expand_all: bool = False,
) -> None:
    """Render the schema tree; collapsed nodes only show object counts."""
    output_stream = stream or sys.stdout
    if (output_format or "table").lower() == "json":
        payload = {
            schema: {
                kind: [{"name": obj.name, "id": obj.id} for obj in groups.get(kind, ())]
                for kind in OBJECT_KINDS
            }
            for schema, groups in tree.schemas.items()
        }
        json.dump(payload, output_stream, indent=2)
        output_stream.write("\n")
        return

    if not tree.schemas:
        logger.info("No schemas found.")
        return

    console = Console(file=output_stream, highlight=False, force_terminal=False)
    root = Tree("[bold]Schemas[/bold]")
    for schema, groups in tree.schemas.items():
        total = sum(len(entries) for entries in groups.values())
        schema_node = root.add(f"[bold]{escape(schema)}[/bold] ({total})")
        if not (expand_all or schema in tree.expanded_schemas):
            continue
        for kind in OBJECT_KINDS:
            entries = groups.get(kind, ())
            kind_node = schema_node.add(f"{KIND_LABELS[kind]} ({len(entries)})")
            if expand_all or (schema, kind) in tree.expanded_groups:
                for entry in entries:
                    label = escape(entry.name)
                    if kind == "function":
                        label += f" [dim]#{entry.id}[/dim]"
                    kind_node.add(label)
    console.print(root)


def render_statement(text: str, highlight: StatementChunk | None, *, logger: Logger) -> None:
    if highlight is not None:
        logger.debug(f"Running rows {highlight.start_row + 1}-{highlight.end_row}: {text}")
    else:
        logger.debug(f"Running: {text}")


def _render_table(result: ResultSet, *, logger: Logger, stream: IO[str], title: str | None) -> None:
    console = Console(file=stream, highlight=False, force_terminal=False)
    if title:
        console.print(f"[bold]{escape(title)}[/bold]")

    table = Table(box=box.SIMPLE_HEAVY, show_header=bool(result.columns), header_style="bold")
    for column in result.columns:
        table.add_column(escape(column or ""))

    if result.rows:
        for row in result.rows:
            table.add_row(*[escape(_stringify(cell)) for cell in row])
    else:
        logger.info("No rows.")

    console.print(table)


def _render_delimited(result: ResultSet, *, stream: IO[str], delimiter: str) -> None:
    writer = csv.writer(stream, delimiter=delimiter)
    if result.columns:
        writer.writerow(result.columns)
    for row in result.rows:
        writer.writerow("" if cell is None else _stringify(cell) for cell in row)


def _render_json(result: ResultSet, *, stream: IO[str]) -> None:
    records = [dict(zip(result.columns, row)) for row in result.rows]
    json.dump(records, stream, indent=2, default=str)
    stream.write("\n")


def _stringify(value: object) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)
