from __future__ import annotations

from pathlib import Path

import pytest

from locate_torrent_data.errors import ConsistencyError
from locate_torrent_data.index import FileTable
from locate_torrent_data.manifest import Manifest, build_manifest
from locate_torrent_data.matching import (
    first_piece,
    iter_combinations,
    resolve_chunks,
    verify_piece,
)
from locate_torrent_data.matching.models import CandidateMatch


def _source_tree(tmp_path: Path) -> Manifest:
    source = tmp_path / "source"
    source.mkdir()
    (source / "a.bin").write_bytes(b"AAAAA")
    (source / "b.bin").write_bytes(b"BBBBB")
    (source / "c.bin").write_bytes(b"0123456789")
    return build_manifest(source, piece_length=10, name="t")


def _disk(tmp_path: Path, files: dict[str, bytes]) -> dict[str, str]:
    disk = tmp_path / "disk"
    disk.mkdir()
    paths: dict[str, str] = {}
    for name, data in files.items():
        target = disk / name
        target.write_bytes(data)
        paths[name] = str(target)
    return paths


def test_iter_combinations_follows_discovery_order() -> None:
    candidates = (
        CandidateMatch(chunk_index=0, path="/x1"),
        CandidateMatch(chunk_index=1, path="/y1"),
        CandidateMatch(chunk_index=0, path="/x2"),
        CandidateMatch(chunk_index=1, path="/y2"),
    )

    combos = [tuple(m.path for m in combo) for combo in iter_combinations(2, candidates)]

    assert combos == [("/x1", "/y1"), ("/x1", "/y2"), ("/x2", "/y1"), ("/x2", "/y2")]


def test_iter_combinations_is_empty_when_a_chunk_has_no_candidates() -> None:
    candidates = (CandidateMatch(chunk_index=0, path="/x1"),)

    assert list(iter_combinations(2, candidates)) == []
    assert list(iter_combinations(0, ())) == []


def test_same_size_candidates_are_told_apart_by_content(tmp_path: Path) -> None:
    manifest = _source_tree(tmp_path)
    paths = _disk(
        tmp_path,
        {"decoy.bin": b"ZZZZZ", "second.bin": b"BBBBB", "first.bin": b"AAAAA"},
    )
    table = FileTable()
    for name in ("decoy.bin", "second.bin", "first.bin"):
        table.put(5, paths[name])
    files = manifest.fresh_files()
    piece = first_piece(manifest, files[0])

    located = verify_piece(resolve_chunks(piece, files, 0, table))

    assert located is not None
    assert [file.name for file in located] == ["a.bin", "b.bin"]
    assert files[0].location == paths["first.bin"]
    assert files[1].location == paths["second.bin"]


def test_unresolved_piece_returns_none_and_leaves_locations_unset(tmp_path: Path) -> None:
    manifest = _source_tree(tmp_path)
    paths = _disk(tmp_path, {"decoy.bin": b"ZZZZZ"})
    table = FileTable()
    table.put(5, paths["decoy.bin"])
    files = manifest.fresh_files()
    piece = first_piece(manifest, files[0])

    assert verify_piece(resolve_chunks(piece, files, 0, table)) is None
    assert [file.location for file in files] == [None, None, None]


def test_short_candidate_read_is_zero_padded(tmp_path: Path) -> None:
    source = tmp_path / "source"
    source.mkdir()
    (source / "padded.bin").write_bytes(b"abc\x00\x00")
    manifest = build_manifest(source, piece_length=5, name="t")
    paths = _disk(tmp_path, {"short.bin": b"abc"})
    table = FileTable()
    table.put(5, paths["short.bin"])
    files = manifest.fresh_files()

    located = verify_piece(resolve_chunks(first_piece(manifest, files[0]), files, 0, table))

    assert located == [files[0]]
    assert files[0].location == paths["short.bin"]


def test_conflicting_location_raises_consistency_error(tmp_path: Path) -> None:
    manifest = _source_tree(tmp_path)
    paths = _disk(tmp_path, {"first.bin": b"AAAAA", "second.bin": b"BBBBB"})
    table = FileTable()
    table.put(5, paths["first.bin"])
    table.put(5, paths["second.bin"])
    files = manifest.fresh_files()
    files[0].location = "/elsewhere/a.bin"
    piece = first_piece(manifest, files[0])

    with pytest.raises(ConsistencyError) as raised:
        verify_piece(resolve_chunks(piece, files, 0, table))

    assert raised.value.existing == "/elsewhere/a.bin"
    assert raised.value.conflicting == paths["first.bin"]


def test_unreadable_candidate_propagates_os_error(tmp_path: Path) -> None:
    manifest = _source_tree(tmp_path)
    table = FileTable()
    table.put(10, str(tmp_path / "missing.bin"))
    files = manifest.fresh_files()
    piece = first_piece(manifest, files[2])

    with pytest.raises(OSError):
        verify_piece(resolve_chunks(piece, files, 2, table))
