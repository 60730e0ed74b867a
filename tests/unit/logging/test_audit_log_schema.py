from __future__ import annotations

import io
import json
from pathlib import Path

from locate_torrent_data.config import LocatorConfig
from locate_torrent_data.index import FileIndex


def test_finished_tasks_are_written_as_jsonl(tmp_path: Path) -> None:
    audit_path = tmp_path / "logs" / "audit.jsonl"
    data = tmp_path / "data"
    data.mkdir()
    (data / "a.bin").write_bytes(b"abc")
    file_index = FileIndex(config=LocatorConfig(audit_path=audit_path))

    file_index.add(data).result(10)
    file_index.save(io.StringIO()).result(10)

    events = [json.loads(line) for line in audit_path.read_text(encoding="utf-8").splitlines()]
    assert [event["action"] for event in events] == ["add", "save"]
    assert set(events[0].keys()) == {
        "action",
        "error_code",
        "metadata",
        "ok",
        "task_id",
        "timestamp",
    }
    assert events[0]["task_id"] == "add-1"
    assert events[0]["ok"] is True
    assert events[0]["error_code"] is None
    assert events[0]["metadata"]["entries"] == 1
    assert events[1]["metadata"]["entries"] == 1
    assert isinstance(events[1]["metadata"]["duration_ms"], int)


def test_failed_task_records_error_code(tmp_path: Path) -> None:
    audit_path = tmp_path / "audit.jsonl"
    file_index = FileIndex(config=LocatorConfig(audit_path=audit_path))

    future = file_index.load(tmp_path / "missing.txt")
    assert isinstance(future.exception(10), FileNotFoundError)

    event = json.loads(audit_path.read_text(encoding="utf-8").splitlines()[-1])
    assert event["action"] == "load"
    assert event["ok"] is False
    assert event["error_code"] == "FILE_NOT_FOUND"
