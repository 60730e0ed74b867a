from __future__ import annotations

import random
from pathlib import Path

from locate_torrent_data.index import FileIndex, index, load
from locate_torrent_data.manifest import Manifest, ManifestFile, build_manifest

WAIT = 10
PIECE_LENGTH = 30
SIZES = (200, 5, 1000, 100, 5, 5, 5, 5, 99, 30, 30, 30, 30)
MOVED = {2, 5, 6, 7, 11}


def _scenario(tmp_path: Path) -> tuple[Manifest, Path, Path]:
    source = tmp_path / "source"
    present = tmp_path / "present"
    renamed = tmp_path / "renamed"
    for folder in (source, present, renamed):
        folder.mkdir()
    rng = random.Random(13)
    for number, size in enumerate(SIZES, start=1):
        data = rng.randbytes(size)
        (source / f"file{number:02d}.txt").write_bytes(data)
        if number in MOVED:
            (renamed / f"moved{number:02d}.dat").write_bytes(data)
        else:
            (present / f"copy{number:02d}.bin").write_bytes(data)
    return build_manifest(source, PIECE_LENGTH, name="release"), present, renamed


def _expected_location(file: ManifestFile, present: Path, renamed: Path) -> str:
    number = int(file.name[len("file") : len("file") + 2])
    if number in MOVED:
        return str(renamed / f"moved{number:02d}.dat")
    return str(present / f"copy{number:02d}.bin")


def _split(files: list[ManifestFile]) -> tuple[list[str], list[str]]:
    found = [file.name for file in files if file.location is not None]
    missing = [file.name for file in files if file.location is None]
    return found, missing


def test_partial_index_then_complete_index(tmp_path: Path) -> None:
    manifest, present, renamed = _scenario(tmp_path)
    file_index = index(present)

    first = file_index.search(manifest).result(WAIT)
    found, missing = _split(first)

    assert len(found) == 8
    assert missing == [f"file{number:02d}.txt" for number in sorted(MOVED)]
    for file in first:
        if file.location is not None:
            assert file.location == _expected_location(file, present, renamed)

    file_index.add(renamed)
    second = file_index.search(manifest).result(WAIT)

    assert [file.location for file in second] == [
        _expected_location(file, present, renamed) for file in second
    ]
    assert [file.location for file in first if file.name == "file02.txt"] == [None]


def test_search_signals_follow_manifest_order(tmp_path: Path) -> None:
    manifest, present, _ = _scenario(tmp_path)
    seen: list[tuple[str, str]] = []
    ends: list[int] = []
    file_index = FileIndex()
    file_index.on("match", lambda file, _manifest: seen.append(("match", file.name)))
    file_index.on("notFound", lambda file, _manifest: seen.append(("notFound", file.name)))
    file_index.on("end", lambda files, _manifest: ends.append(len(files)))
    file_index.add(present)

    file_index.search(manifest).result(WAIT)

    assert [name for _, name in seen] == [file.name for file in manifest.files]
    assert [kind for kind, _ in seen].count("notFound") == 5
    assert ends == [13]


def test_remove_restores_previous_not_found_count(tmp_path: Path) -> None:
    manifest, present, renamed = _scenario(tmp_path)
    file_index = index(present)
    _, before = _split(file_index.search(manifest).result(WAIT))

    file_index.add(renamed)
    _, during = _split(file_index.search(manifest).result(WAIT))
    file_index.remove(renamed)
    _, after = _split(file_index.search(manifest).result(WAIT))

    assert during == []
    assert after == before


def test_adding_same_root_twice_keeps_one_entry_per_file(tmp_path: Path) -> None:
    _, present, _ = _scenario(tmp_path)
    file_index = index(present)
    file_index.add(present).result(WAIT)

    table = file_index.table
    assert table is not None
    assert len(table) == len(SIZES) - len(MOVED)


def test_saved_table_reloads_into_equivalent_index(tmp_path: Path) -> None:
    manifest, present, renamed = _scenario(tmp_path)
    saved = tmp_path / "table.csv"
    file_index = index([present, renamed])
    file_index.save(saved).result(WAIT)
    outcomes: list[BaseException | None] = []

    reloaded = load(saved, callback=outcomes.append)
    files = reloaded.search(manifest).result(WAIT)

    assert outcomes == [None]
    assert reloaded.table == file_index.table
    assert all(file.location is not None for file in files)


def test_same_size_files_resolve_to_their_own_copies(tmp_path: Path) -> None:
    source = tmp_path / "source"
    disk = tmp_path / "disk"
    source.mkdir()
    disk.mkdir()
    rng = random.Random(5)
    for number in range(5):
        data = rng.randbytes(5)
        (source / f"part{number}.bin").write_bytes(data)
        (disk / f"{4 - number}-copy.bin").write_bytes(data)
    manifest = build_manifest(source, 7, name="parts")

    files = index(disk).search(manifest).result(WAIT)

    assert [file.location for file in files] == [
        str(disk / f"{4 - number}-copy.bin") for number in range(5)
    ]
