from __future__ import annotations

import io
import os
from pathlib import Path

import pytest

from locate_torrent_data.config import ScanOptions
from locate_torrent_data.errors import TableFormatError
from locate_torrent_data.index import FileTable, read_table, scan_root, write_table


def _sample_table() -> FileTable:
    table = FileTable()
    table.put(200, "/srv/data/file1.dat")
    table.put(5, "/srv/data/with, comma.dat")
    table.put(5, '/srv/data/quote"inside.dat')
    table.put(0, "/srv/data/empty")
    return table


def test_save_then_load_round_trips_entries(tmp_path: Path) -> None:
    table = _sample_table()
    destination = tmp_path / "index.csv"

    count = write_table(table, destination)
    loaded = read_table(destination)

    assert count == 4
    assert loaded == table
    assert not (tmp_path / "index.csv.tmp").exists()


def test_written_lines_use_size_comma_quoted_path_format(tmp_path: Path) -> None:
    table = FileTable()
    table.put(30, "/srv/a.dat")
    table.put(5, "/srv/b.dat")
    destination = tmp_path / "index.csv"

    write_table(table, destination)

    raw = destination.read_bytes().decode("utf-8")
    assert raw == f'30,"/srv/a.dat"{os.linesep}5,"/srv/b.dat"{os.linesep}'


def test_streams_are_supported_for_both_directions() -> None:
    table = _sample_table()
    buffer = io.StringIO()

    write_table(table, buffer)
    buffer.seek(0)

    assert read_table(buffer) == table
    assert not buffer.closed


def test_any_malformed_line_fails_the_whole_load() -> None:
    source = io.StringIO('10,"/srv/a"\nnot a table line\n20,"/srv/b"\n')

    with pytest.raises(TableFormatError) as excinfo:
        read_table(source)

    assert excinfo.value.line_number == 2


def test_missing_source_raises_os_error(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_table(tmp_path / "missing.csv")


@pytest.mark.skipif(os.name != "posix", reason="needs bytes file names")
def test_undecodable_file_names_survive_save_and_load(tmp_path: Path) -> None:
    data = tmp_path / "data"
    data.mkdir()
    raw_name = os.path.join(os.fsencode(data), b"caf\xe9.bin")
    try:
        with open(raw_name, "wb") as handle:
            handle.write(b"abc")
    except OSError:
        pytest.skip("file system rejects non-UTF-8 names")
    table = scan_root(str(data), ScanOptions())
    destination = tmp_path / "index.csv"

    write_table(table, destination)
    loaded = read_table(destination)

    assert loaded == table
    assert [os.fsencode(path) for _, path in loaded] == [raw_name]
