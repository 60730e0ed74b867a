"""Piece boundary arithmetic for locating a file's fingerprinting piece."""

from __future__ import annotations

from dataclasses import replace

from locate_torrent_data.manifest import Manifest, ManifestFile
from locate_torrent_data.matching.models import Piece


def piece_at(manifest: Manifest, index: int) -> Piece:
    """Return the piece with ``index``, honoring the shorter final piece."""
    length = manifest.piece_length
    if index == len(manifest.pieces) - 1:
        length = manifest.last_piece_length
    return Piece(
        offset=index * manifest.piece_length,
        length=length,
        index=index,
        hash=manifest.pieces[index],
    )


def first_piece(manifest: Manifest, file: ManifestFile) -> Piece:
    """Find the first piece by which ``file`` can be identified.

    Starts at the first piece boundary at or after the file's offset. When the
    file ends before that boundary, the piece containing the whole file is used
    instead. When the chosen piece starts inside the file but runs past its end,
    the preceding piece is attached as a fallback: it holds the file's head and
    may verify when the following neighbours cannot be supplied.
    """
    piece_length = manifest.piece_length
    remainder = file.offset % piece_length
    offset = file.offset - remainder + piece_length if remainder else file.offset
    if offset >= file.end:
        offset -= piece_length
        return piece_at(manifest, offset // piece_length)

    index = offset // piece_length
    fallback: Piece | None = None
    if remainder and offset + piece_length > file.end and index > 0:
        fallback = piece_at(manifest, index - 1)
    primary = piece_at(manifest, index)
    if fallback is None:
        return primary
    return replace(primary, fallback=fallback)
