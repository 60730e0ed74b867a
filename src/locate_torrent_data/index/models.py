"""Typed models for index tasks and scanning."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from locate_torrent_data.config import ScanOptions

if TYPE_CHECKING:
    from locate_torrent_data.manifest import Manifest, ManifestFile


class TaskAction(str, Enum):
    """Kinds of work an index can be asked to do."""

    SEARCH = "search"
    ADD = "add"
    REMOVE = "remove"
    LOAD = "load"
    SAVE = "save"

    @property
    def mutates(self) -> bool:
        """Return True for actions that replace the file table."""
        return self in (TaskAction.ADD, TaskAction.REMOVE, TaskAction.LOAD)


@dataclass(slots=True, frozen=True)
class Task:
    """Immutable unit of work queued on a file index."""

    task_id: str
    action: TaskAction
    roots: tuple[str, ...] = ()
    options: ScanOptions | None = None
    manifest: Manifest | None = None
    for_each: Callable[[ManifestFile], object] | None = None
    target: object | None = None
