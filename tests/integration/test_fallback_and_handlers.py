from __future__ import annotations

import io
import random
from pathlib import Path

from locate_torrent_data.index import FileIndex, index
from locate_torrent_data.manifest import ManifestFile, build_manifest

WAIT = 10


def test_file_verified_through_preceding_piece(tmp_path: Path) -> None:
    source = tmp_path / "source"
    disk = tmp_path / "disk"
    source.mkdir()
    disk.mkdir()
    rng = random.Random(10)
    middle = rng.randbytes(10)
    (source / "a-head.bin").write_bytes(b"\x00" * 5)
    (source / "b-middle.bin").write_bytes(middle)
    (source / "c-tail.bin").write_bytes(b"\xff" + rng.randbytes(6))
    (disk / "renamed-middle.bin").write_bytes(middle)
    manifest = build_manifest(source, 10, name="split")

    files = index(disk).search(manifest).result(WAIT)

    assert [file.location for file in files] == [None, str(disk / "renamed-middle.bin"), None]


def test_handler_replaces_match_signal_and_moved_files_are_pruned(tmp_path: Path) -> None:
    source = tmp_path / "source"
    disk = tmp_path / "disk"
    archive = tmp_path / "archive"
    for folder in (source, disk, archive):
        folder.mkdir()
    rng = random.Random(3)
    for name, size in (("first.bin", 12), ("second.bin", 9)):
        data = rng.randbytes(size)
        (source / name).write_bytes(data)
        (disk / f"old-{name}").write_bytes(data)
    manifest = build_manifest(source, 8, name="pair")
    matches: list[str] = []
    handled: list[str] = []

    def move(file: ManifestFile) -> None:
        assert file.location is not None
        handled.append(file.name)
        Path(file.location).rename(archive / file.name)

    file_index = index(disk).on("match", lambda file, _manifest: matches.append(file.name))
    files = file_index.search(manifest, for_each=move).result(WAIT)
    file_index.save(io.StringIO()).result(WAIT)

    assert handled == ["first.bin", "second.bin"]
    assert matches == []
    assert [file.location for file in files] == [
        str(disk / "old-first.bin"),
        str(disk / "old-second.bin"),
    ]
    table = file_index.table
    assert table is not None
    assert len(table) == 0


def test_table_swap_does_not_disturb_running_search(tmp_path: Path) -> None:
    source = tmp_path / "source"
    disk = tmp_path / "disk"
    source.mkdir()
    disk.mkdir()
    data = random.Random(1).randbytes(40)
    (source / "only.bin").write_bytes(data)
    (disk / "only-copy.bin").write_bytes(data)
    manifest = build_manifest(source, 16, name="one")
    file_index = FileIndex()
    file_index.add(disk)

    search = file_index.search(manifest)
    file_index.remove(disk)
    after_remove = file_index.search(manifest)

    assert search.result(WAIT)[0].location == str(disk / "only-copy.bin")
    assert after_remove.result(WAIT)[0].location is None
