"""Command-line entrypoint: index folders, search one manifest, print JSON lines."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import TextIO

from locate_torrent_data.config import ConfigOverrides, load_effective_config
from locate_torrent_data.errors import LocateError
from locate_torrent_data.index import FileIndex

EXIT_OK = 0
EXIT_ERROR = 2


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for one index-and-search run."""
    parser = argparse.ArgumentParser(prog="locate-torrent-data")
    parser.add_argument("manifest")
    parser.add_argument("--root", action="append", default=[], dest="roots")
    parser.add_argument("--load", required=False, default=None)
    parser.add_argument("--save", required=False, default=None)
    parser.add_argument("--max-depth", type=int, required=False, default=None)
    parser.add_argument("--follow-symlinks", action="store_true", default=None)
    parser.add_argument("--concurrency", type=int, required=False, default=None)
    parser.add_argument("--config-dir", required=False, default=None)
    parser.add_argument("--audit-log", required=False, default=None)
    return parser


def run(args: argparse.Namespace, out_stream: TextIO) -> int:
    """Execute a parsed invocation; return the process exit code."""
    overrides = ConfigOverrides(
        concurrency=args.concurrency,
        max_depth=args.max_depth,
        follow_symlinks=args.follow_symlinks,
        audit_path=Path(args.audit_log) if args.audit_log is not None else None,
    )
    config = load_effective_config(
        config_dir=Path(args.config_dir) if args.config_dir is not None else None,
        overrides=overrides,
    )
    file_index = FileIndex(config=config)
    pending = []
    if args.load is not None:
        pending.append(file_index.load(args.load))
    if args.roots:
        pending.append(file_index.add(args.roots))
    search = file_index.search(args.manifest)
    if args.save is not None:
        pending.append(file_index.save(args.save))

    try:
        for future in pending:
            future.result()
        files = search.result()
    except (LocateError, OSError, ValueError) as error:
        _write(out_stream, {"ok": False, "error": str(error), "error_type": type(error).__name__})
        return EXIT_ERROR

    matched = 0
    for file in files:
        if file.location is not None:
            matched += 1
        _write(out_stream, {"path": file.path, "location": file.location})
    _write(out_stream, {"ok": True, "files": len(files), "matched": matched})
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the locate-torrent-data command."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    return run(args, out_stream=sys.stdout)


def _write(out_stream: TextIO, payload: dict[str, object]) -> None:
    out_stream.write(f"{json.dumps(payload, sort_keys=True)}\n")
    out_stream.flush()
