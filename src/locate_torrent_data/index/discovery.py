"""Directory traversal that builds file tables from scan roots."""

from __future__ import annotations

import os
import time
from collections.abc import Iterable
from concurrent.futures import Executor
from dataclasses import asdict, dataclass
from pathlib import Path

from locate_torrent_data.config import ScanOptions
from locate_torrent_data.errors import ScanError
from locate_torrent_data.index.table import FileTable, table_union


@dataclass(slots=True, frozen=True)
class ScanProfile:
    """Counters for one scan pass."""

    roots: int
    files: int
    skipped_dirs: int
    total_seconds: float


PathInput = str | os.PathLike[str] | Iterable[str | os.PathLike[str]]


def normalize_roots(paths: PathInput) -> tuple[str, ...]:
    """Return absolute, normalized root paths in caller order."""
    if isinstance(paths, (str, os.PathLike)):
        paths = [paths]
    return tuple(os.path.abspath(os.fspath(path)) for path in paths)


def is_under_any(location: str, roots: tuple[str, ...]) -> bool:
    """Return True when ``location`` is one of ``roots`` or nested below one."""
    candidate = Path(location)
    return any(candidate.is_relative_to(root) for root in roots)


def scan_roots(
    roots: tuple[str, ...],
    options: ScanOptions,
    executor: Executor | None = None,
    profile: dict[str, object] | None = None,
) -> FileTable:
    """Scan every root, one table per root, and union them in root order."""
    started = time.perf_counter()
    counters = [{"skipped_dirs": 0} for _ in roots]
    if executor is None:
        tables = [scan_root(root, options, count) for root, count in zip(roots, counters)]
    else:
        tables = list(
            executor.map(lambda root, count: scan_root(root, options, count), roots, counters)
        )
    merged: FileTable | None = None
    for table in tables:
        merged = table_union(merged, table)
    output = merged if merged is not None else FileTable()
    if profile is not None:
        payload = ScanProfile(
            roots=len(roots),
            files=len(output),
            skipped_dirs=sum(count["skipped_dirs"] for count in counters),
            total_seconds=time.perf_counter() - started,
        )
        profile.update(asdict(payload))
    return output


def scan_root(root: str, options: ScanOptions, counters: dict[str, int] | None = None) -> FileTable:
    """Walk one root deterministically and record every regular file by size.

    An unreadable root fails the scan. Unreadable directories below the root
    are skipped. ``max_depth`` counts the root's direct children as depth 1.
    """
    table = FileTable()
    try:
        with os.scandir(root) as entries:
            ordered_entries = sorted(entries, key=lambda item: item.name)
    except OSError as error:
        raise ScanError(f"Failed to read path: {root}", path=root) from error

    visited: set[str] = set()
    if options.follow_symlinks:
        visited.add(os.path.realpath(root))
    stack: list[tuple[list[os.DirEntry[str]], int]] = [(ordered_entries, 1)]
    while stack:
        entries, depth = stack.pop()
        subdirs: list[str] = []
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=options.follow_symlinks):
                    subdirs.append(entry.path)
                    continue
                if not entry.is_file(follow_symlinks=options.follow_symlinks):
                    continue
                stat = entry.stat(follow_symlinks=options.follow_symlinks)
            except OSError:
                continue
            table.put(stat.st_size, entry.path)
        if options.max_depth is not None and depth >= options.max_depth:
            continue
        for path in reversed(subdirs):
            if options.follow_symlinks:
                real = os.path.realpath(path)
                if real in visited:
                    continue
                visited.add(real)
            try:
                with os.scandir(path) as children:
                    ordered_children = sorted(children, key=lambda item: item.name)
            except OSError:
                if counters is not None:
                    counters["skipped_dirs"] = counters.get("skipped_dirs", 0) + 1
                continue
            stack.append((ordered_children, depth + 1))
    return table
