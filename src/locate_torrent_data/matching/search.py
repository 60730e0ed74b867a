"""Resolve every file of a manifest against a file table."""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import Executor
from dataclasses import replace

from locate_torrent_data.index.table import FileTable
from locate_torrent_data.manifest import Manifest, ManifestFile
from locate_torrent_data.matching.chunking import resolve_chunks
from locate_torrent_data.matching.models import Piece
from locate_torrent_data.matching.pieces import first_piece
from locate_torrent_data.matching.verify import verify_piece


def check_piece(
    piece: Piece,
    files: Sequence[ManifestFile],
    position: int,
    table: FileTable,
    executor: Executor | None = None,
) -> list[ManifestFile] | None:
    """Verify ``piece``, then its fallback piece when no combination matched."""
    located = verify_piece(resolve_chunks(piece, files, position, table), executor)
    if located is None and piece.fallback is not None:
        return check_piece(piece.fallback, files, position, table, executor)
    return located


def locate_files(
    table: FileTable,
    manifest: Manifest,
    files: Sequence[ManifestFile],
    executor: Executor | None = None,
) -> list[ManifestFile]:
    """Fill in ``location`` for each file of ``files`` that verifies; return files located.

    Files are processed one at a time in manifest order. A file whose first
    piece is the piece evaluated for the previous file is skipped, as is a
    fallback piece that was already evaluated as the previous primary piece.
    """
    located: list[ManifestFile] = []
    previous: Piece | None = None
    for position, file in enumerate(files):
        if file.length == 0 or not table.contains(file.length):
            continue
        piece = first_piece(manifest, file)
        if previous is not None and piece.index == previous.index:
            continue
        if (
            piece.fallback is not None
            and previous is not None
            and piece.fallback.index == previous.index
        ):
            piece = replace(piece, fallback=None)
        previous = piece
        result = check_piece(piece, files, position, table, executor)
        if result:
            located.extend(result)
    return located
