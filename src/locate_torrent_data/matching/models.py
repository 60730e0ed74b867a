"""Ephemeral models built while verifying one piece."""

from __future__ import annotations

from dataclasses import dataclass

from locate_torrent_data.manifest import ManifestFile


@dataclass(slots=True, frozen=True)
class Piece:
    """A hashed byte range of the manifest stream."""

    offset: int
    length: int
    index: int
    hash: str
    fallback: Piece | None = None

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass(slots=True, frozen=True)
class Chunk:
    """The part of one manifest file that falls inside a piece."""

    file: ManifestFile
    file_offset: int
    piece_offset: int
    length: int


@dataclass(slots=True, frozen=True)
class CandidateMatch:
    """An on-disk path that could supply a chunk's bytes."""

    chunk_index: int
    path: str
    data: bytes | None = None


@dataclass(slots=True, frozen=True)
class PieceCandidates:
    """A piece expanded into its chunks and their size-matching candidates."""

    piece: Piece
    chunks: tuple[Chunk, ...]
    candidates: tuple[CandidateMatch, ...]
