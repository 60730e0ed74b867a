"""Combinatorial hash verification of candidate files against a piece."""

from __future__ import annotations

import hashlib
import itertools
from collections.abc import Iterator
from concurrent.futures import Executor
from dataclasses import replace

from locate_torrent_data.errors import ConsistencyError
from locate_torrent_data.manifest import ManifestFile
from locate_torrent_data.matching.models import CandidateMatch, Chunk, Piece, PieceCandidates


def read_candidate(chunk: Chunk, match: CandidateMatch) -> CandidateMatch:
    """Read the chunk's byte range from the candidate path.

    Short reads are zero-padded to the chunk length. ``OSError`` propagates.
    """
    with open(match.path, "rb") as handle:
        handle.seek(chunk.file_offset)
        data = handle.read(chunk.length)
    if len(data) < chunk.length:
        data = data.ljust(chunk.length, b"\x00")
    return replace(match, data=data)


def read_candidates(
    resolved: PieceCandidates, executor: Executor | None = None
) -> tuple[CandidateMatch, ...]:
    """Read every candidate, concurrently when an executor is supplied."""

    def read(match: CandidateMatch) -> CandidateMatch:
        return read_candidate(resolved.chunks[match.chunk_index], match)

    if executor is None:
        return tuple(read(match) for match in resolved.candidates)
    return tuple(executor.map(read, resolved.candidates))


def iter_combinations(
    chunk_count: int, candidates: tuple[CandidateMatch, ...]
) -> Iterator[tuple[CandidateMatch, ...]]:
    """Yield one candidate per chunk, in discovery order, without materializing the product."""
    if chunk_count == 0:
        return
    groups: list[list[CandidateMatch]] = [[] for _ in range(chunk_count)]
    for match in candidates:
        groups[match.chunk_index].append(match)
    if any(not group for group in groups):
        return
    yield from itertools.product(*groups)


def assemble_piece(
    piece: Piece, chunks: tuple[Chunk, ...], combination: tuple[CandidateMatch, ...]
) -> bytearray:
    """Copy each chosen candidate's bytes to its chunk's place inside the piece."""
    buffer = bytearray(piece.length)
    for chunk, match in zip(chunks, combination, strict=True):
        if match.data is None:
            raise ValueError(f"Candidate '{match.path}' has not been read.")
        buffer[chunk.piece_offset : chunk.piece_offset + chunk.length] = match.data
    return buffer


def find_matching_combination(
    piece: Piece,
    chunks: tuple[Chunk, ...],
    candidates: tuple[CandidateMatch, ...],
) -> tuple[CandidateMatch, ...] | None:
    """Return the first combination whose assembled bytes hash to the piece hash."""
    for combination in iter_combinations(len(chunks), candidates):
        buffer = assemble_piece(piece, chunks, combination)
        if hashlib.sha1(buffer).hexdigest() == piece.hash:
            return combination
    return None


def accept_combination(
    chunks: tuple[Chunk, ...], combination: tuple[CandidateMatch, ...]
) -> list[ManifestFile]:
    """Assign locations from a verified combination; return newly located files.

    A file that already has a different location is a fatal inconsistency.
    """
    located: list[ManifestFile] = []
    for chunk, match in zip(chunks, combination, strict=True):
        file = chunk.file
        if file.location is None:
            file.location = match.path
            located.append(file)
            continue
        if file.location != match.path:
            raise ConsistencyError(
                file_path=file.path, existing=file.location, conflicting=match.path
            )
    return located


def verify_piece(
    resolved: PieceCandidates, executor: Executor | None = None
) -> list[ManifestFile] | None:
    """Verify one piece; return newly located files, or None when unresolved."""
    if not resolved.chunks:
        return None
    candidates = read_candidates(resolved, executor)
    combination = find_matching_combination(resolved.piece, resolved.chunks, candidates)
    if combination is None:
        return None
    return accept_combination(resolved.chunks, combination)
