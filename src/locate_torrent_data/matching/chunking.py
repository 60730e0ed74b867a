"""Expand a piece into per-file chunks and their size-matching candidates."""

from __future__ import annotations

from collections.abc import Sequence

from locate_torrent_data.index.table import FileTable
from locate_torrent_data.manifest import ManifestFile
from locate_torrent_data.matching.models import CandidateMatch, Chunk, Piece, PieceCandidates


def overlapping_range(piece: Piece, files: Sequence[ManifestFile], position: int) -> range:
    """Return indices of the files overlapping ``piece``, scanning out from ``position``.

    Files are stored in increasing offset order, so the scan stops at the
    first file on each side whose boundary lies outside the piece.
    """
    first = position
    while first > 0 and files[first].offset > piece.offset:
        first -= 1
    last = position
    while last < len(files) - 1 and files[last].end < piece.end:
        last += 1
    return range(first, last + 1)


def resolve_chunks(
    piece: Piece,
    files: Sequence[ManifestFile],
    position: int,
    table: FileTable,
) -> PieceCandidates:
    """Build chunks for every overlapping file that has at least one candidate."""
    chunks: list[Chunk] = []
    candidates: list[CandidateMatch] = []
    for index in overlapping_range(piece, files, position):
        file = files[index]
        paths = table.get(file.length)
        if not paths:
            continue
        file_offset = max(piece.offset - file.offset, 0)
        piece_offset = max(file.offset - piece.offset, 0)
        length = min(file.length - file_offset, piece.length - piece_offset)
        if length <= 0:
            continue
        chunk_index = len(chunks)
        chunks.append(
            Chunk(file=file, file_offset=file_offset, piece_offset=piece_offset, length=length)
        )
        candidates.extend(CandidateMatch(chunk_index=chunk_index, path=path) for path in paths)
    return PieceCandidates(piece=piece, chunks=tuple(chunks), candidates=tuple(candidates))
