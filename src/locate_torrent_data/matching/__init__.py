"""Piece location, chunk resolution and combinatorial hash verification."""

from .chunking import overlapping_range, resolve_chunks
from .models import CandidateMatch, Chunk, Piece, PieceCandidates
from .pieces import first_piece, piece_at
from .search import check_piece, locate_files
from .verify import (
    accept_combination,
    assemble_piece,
    find_matching_combination,
    iter_combinations,
    read_candidates,
    verify_piece,
)

__all__ = [
    "CandidateMatch",
    "Chunk",
    "Piece",
    "PieceCandidates",
    "accept_combination",
    "assemble_piece",
    "check_piece",
    "find_matching_combination",
    "first_piece",
    "iter_combinations",
    "locate_files",
    "overlapping_range",
    "piece_at",
    "read_candidates",
    "resolve_chunks",
    "verify_piece",
]
