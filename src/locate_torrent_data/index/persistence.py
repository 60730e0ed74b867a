"""CSV persistence of file tables: one ``<size>,"<absolute-path>"`` line per entry."""

from __future__ import annotations

import os
import re
from collections.abc import Iterable
from pathlib import Path
from typing import Final, TextIO

from locate_torrent_data.errors import TableFormatError
from locate_torrent_data.index.table import FileTable

LINE_PATTERN: Final[re.Pattern[str]] = re.compile(r'^(\d+),"(.+)"$')

TableSource = str | os.PathLike[str] | TextIO
TableDestination = str | os.PathLike[str] | TextIO


def format_line(size: int, path: str) -> str:
    """Render one table entry without a line terminator."""
    return f'{size},"{path}"'


def write_table(table: FileTable, destination: TableDestination) -> int:
    """Write ``table`` to a path or writable text stream; return entry count.

    Paths are written atomically through a temporary sibling file. Streams are
    flushed but left open for the caller.
    """
    if isinstance(destination, (str, os.PathLike)):
        path = Path(destination)
        tmp = path.with_name(path.name + ".tmp")
        try:
            with tmp.open(
                "w", encoding="utf-8", errors="surrogateescape", newline=""
            ) as handle:
                count = _write_lines(table, handle)
            tmp.replace(path)
        finally:
            tmp.unlink(missing_ok=True)
        return count
    count = _write_lines(table, destination)
    destination.flush()
    return count


def read_table(source: TableSource) -> FileTable:
    """Read a table from a path or readable text stream.

    Every line must match the entry pattern; one malformed line fails the
    whole load with ``TableFormatError``.
    """
    if isinstance(source, (str, os.PathLike)):
        with Path(source).open(
            "r", encoding="utf-8", errors="surrogateescape", newline=None
        ) as handle:
            return parse_lines(handle)
    return parse_lines(source)


def parse_lines(lines: Iterable[str]) -> FileTable:
    table = FileTable()
    for line_number, raw_line in enumerate(lines, start=1):
        line = raw_line.rstrip("\r\n")
        match = LINE_PATTERN.match(line)
        if match is None:
            raise TableFormatError(
                f"Invalid file table entry on line {line_number}.", line_number=line_number
            )
        table.put(int(match.group(1)), match.group(2))
    return table


def _write_lines(table: FileTable, handle: TextIO) -> int:
    count = 0
    for size, path in table:
        handle.write(format_line(size, path))
        handle.write(os.linesep)
        count += 1
    return count
