"""Content manifests: parsed torrent metainfo and its decoder wiring."""

from __future__ import annotations

import hashlib
import math
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path, PurePosixPath

import bencodepy

from locate_torrent_data.errors import ManifestError

SHA1_LENGTH = 20


@dataclass(slots=True)
class ManifestFile:
    """One file of the manifest's virtual byte stream.

    ``location`` is the only field written after construction; it holds the
    absolute path of the verified on-disk copy once one is found.
    """

    offset: int
    length: int
    path: str
    name: str
    location: str | None = None

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass(slots=True, frozen=True)
class Manifest:
    """Ordered files concatenated into one stream, split into hashed pieces."""

    name: str
    length: int
    piece_length: int
    last_piece_length: int
    files: tuple[ManifestFile, ...]
    pieces: tuple[str, ...]

    def fresh_files(self) -> list[ManifestFile]:
        """Return copies of the file entries with ``location`` unset."""
        return [replace(item, location=None) for item in self.files]


def load_manifest(source: object) -> Manifest:
    """Accept a parsed manifest, encoded metainfo bytes, or a path to a torrent file."""
    if isinstance(source, Manifest):
        validate_manifest(source)
        return source
    if isinstance(source, (bytes, bytearray, memoryview)):
        return parse_manifest(bytes(source))
    if isinstance(source, (str, os.PathLike)):
        try:
            data = Path(source).read_bytes()
        except OSError as error:
            raise ManifestError(f"Unable to read manifest: {os.fspath(source)}") from error
        return parse_manifest(data)
    raise ManifestError("Invalid manifest.")


def parse_manifest(data: bytes) -> Manifest:
    """Decode bencoded torrent metainfo into a validated ``Manifest``."""
    try:
        metainfo = bencodepy.decode(data)
    except Exception as error:
        raise ManifestError("Manifest is not valid bencoded data.") from error
    if not isinstance(metainfo, Mapping):
        raise ManifestError("Manifest must decode to a dictionary.")
    info = _field(metainfo, "info")
    if not isinstance(info, Mapping):
        raise ManifestError("Manifest field 'info' must be a dictionary.")

    name = _text(_field(info, "name"), "info.name")
    piece_length = _field(info, "piece length")
    if not isinstance(piece_length, int) or piece_length < 1:
        raise ManifestError("Manifest field 'info.piece length' must be a positive integer.")
    raw_pieces = _field(info, "pieces")
    if not isinstance(raw_pieces, bytes) or len(raw_pieces) % SHA1_LENGTH:
        raise ManifestError("Manifest field 'info.pieces' must hold 20-byte digests.")
    pieces = tuple(
        raw_pieces[start : start + SHA1_LENGTH].hex()
        for start in range(0, len(raw_pieces), SHA1_LENGTH)
    )

    files: list[ManifestFile] = []
    offset = 0
    raw_files = _field(info, "files")
    if raw_files is None:
        length = _field(info, "length")
        if not isinstance(length, int) or length < 0:
            raise ManifestError("Manifest field 'info.length' must be a non-negative integer.")
        files.append(ManifestFile(offset=0, length=length, path=name, name=name))
        offset = length
    else:
        if not isinstance(raw_files, list):
            raise ManifestError("Manifest field 'info.files' must be a list.")
        for position, entry in enumerate(raw_files):
            if not isinstance(entry, Mapping):
                raise ManifestError(f"Manifest file entry {position} must be a dictionary.")
            length = _field(entry, "length")
            if not isinstance(length, int) or length < 0:
                raise ManifestError(f"Manifest file entry {position} has an invalid length.")
            parts = _field(entry, "path")
            if not isinstance(parts, list) or not parts:
                raise ManifestError(f"Manifest file entry {position} has an invalid path.")
            text_parts = [_text(part, f"info.files[{position}].path") for part in parts]
            files.append(
                ManifestFile(
                    offset=offset,
                    length=length,
                    path=PurePosixPath(name, *text_parts).as_posix(),
                    name=text_parts[-1],
                )
            )
            offset += length

    manifest = Manifest(
        name=name,
        length=offset,
        piece_length=piece_length,
        last_piece_length=_last_piece_length(offset, piece_length),
        files=tuple(files),
        pieces=pieces,
    )
    validate_manifest(manifest)
    return manifest


def validate_manifest(manifest: Manifest) -> None:
    """Check the structural invariants the piece arithmetic relies on."""
    if manifest.piece_length < 1:
        raise ManifestError("Manifest piece length must be positive.")
    expected_pieces = math.ceil(manifest.length / manifest.piece_length)
    if len(manifest.pieces) != expected_pieces:
        raise ManifestError(
            f"Manifest lists {len(manifest.pieces)} pieces; expected {expected_pieces}."
        )
    if expected_pieces and not 0 < manifest.last_piece_length <= manifest.piece_length:
        raise ManifestError("Manifest last piece length is out of range.")
    offset = 0
    for item in manifest.files:
        if item.length < 0 or item.offset != offset:
            raise ManifestError(f"Manifest file '{item.path}' has an inconsistent offset.")
        offset = item.end
    if offset != manifest.length:
        raise ManifestError("Manifest file lengths do not add up to the total length.")


def build_manifest(root: Path, piece_length: int, name: str | None = None) -> Manifest:
    """Hash a directory tree into a manifest, files in sorted relative-path order."""
    if piece_length < 1:
        raise ValueError("piece_length must be >= 1")
    base = root.resolve()
    manifest_name = name or base.name
    relative_paths = sorted(
        path.relative_to(base).as_posix() for path in base.rglob("*") if path.is_file()
    )
    files: list[ManifestFile] = []
    pieces: list[str] = []
    pending = bytearray()
    offset = 0
    for relative in relative_paths:
        data = (base / relative).read_bytes()
        files.append(
            ManifestFile(
                offset=offset,
                length=len(data),
                path=f"{manifest_name}/{relative}",
                name=PurePosixPath(relative).name,
            )
        )
        offset += len(data)
        pending.extend(data)
        while len(pending) >= piece_length:
            pieces.append(hashlib.sha1(pending[:piece_length]).hexdigest())
            del pending[:piece_length]
    if pending:
        pieces.append(hashlib.sha1(pending).hexdigest())
    return Manifest(
        name=manifest_name,
        length=offset,
        piece_length=piece_length,
        last_piece_length=_last_piece_length(offset, piece_length),
        files=tuple(files),
        pieces=tuple(pieces),
    )


def encode_manifest(manifest: Manifest) -> bytes:
    """Encode a manifest as bencoded multi-file torrent metainfo."""
    prefix = f"{manifest.name}/"
    entries = []
    for item in manifest.files:
        relative = item.path[len(prefix) :] if item.path.startswith(prefix) else item.path
        entries.append(
            {
                b"length": item.length,
                b"path": [part.encode("utf-8") for part in PurePosixPath(relative).parts],
            }
        )
    info = {
        b"files": entries,
        b"name": manifest.name.encode("utf-8"),
        b"piece length": manifest.piece_length,
        b"pieces": b"".join(bytes.fromhex(digest) for digest in manifest.pieces),
    }
    return bencodepy.encode({b"info": info})


def _last_piece_length(length: int, piece_length: int) -> int:
    return length % piece_length or piece_length


def _field(mapping: Mapping[object, object], key: str) -> object:
    if key.encode("utf-8") in mapping:
        return mapping[key.encode("utf-8")]
    return mapping.get(key)


def _text(value: object, field_name: str) -> str:
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as error:
            raise ManifestError(f"Manifest field '{field_name}' is not valid UTF-8.") from error
    if isinstance(value, str):
        return value
    raise ManifestError(f"Manifest field '{field_name}' must be a string.")
