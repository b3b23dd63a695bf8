"""Decide which part of an editor buffer is "the query to run".

An explicit selection always wins. Without one, the buffer is split into chunks
of consecutive non-blank lines and the chunk under the cursor is chosen.
Semicolons do not split a chunk: statements written in the same chunk are sent
to the backend together.
"""

from __future__ import annotations

from pgweb_cli.shared.exceptions import NothingToRunError

from .types import ResolvedStatement, StatementChunk


def split_chunks(buffer: str) -> list[StatementChunk]:
    """Return every maximal run of non-blank lines with its ``[start, end)`` rows."""
    # Rows are numbered by "\n" only, as in the editor.
    lines = [line.removesuffix("\r") for line in buffer.split("\n")]
    chunks: list[StatementChunk] = []
    start: int | None = None

    for row, line in enumerate(lines):
        if line.strip():
            if start is None:
                start = row
            continue
        if start is not None:
            chunks.append(_chunk(lines, start, row))
            start = None

    # A trailing chunk is complete at end of buffer.
    if start is not None:
        chunks.append(_chunk(lines, start, len(lines)))
    return chunks


def chunk_at(chunks: list[StatementChunk], cursor_row: int) -> StatementChunk | None:
    for chunk in chunks:
        if chunk.start_row <= cursor_row < chunk.end_row:
            return chunk
    return None


def resolve(buffer: str, selection: str | None = None, cursor_row: int = 0) -> ResolvedStatement:
    """Resolve the statement to execute.

    Raises NothingToRunError when neither the selection nor the buffer holds text.
    """
    if selection and selection.strip():
        return ResolvedStatement(text=selection.strip())

    trimmed = buffer.strip()
    if not trimmed:
        raise NothingToRunError("Nothing to run: the editor is empty.")

    chunks = split_chunks(buffer)
    chosen = chunk_at(chunks, cursor_row)
    if chosen is None:
        return ResolvedStatement(text=trimmed)
    if len(chunks) == 1:
        return ResolvedStatement(text=chosen.text)
    return ResolvedStatement(text=chosen.text, highlight=chosen)


def _chunk(lines: list[str], start: int, end: int) -> StatementChunk:
    return StatementChunk(text="\n".join(lines[start:end]).strip(), start_row=start, end_row=end)
