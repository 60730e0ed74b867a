"""File table, directory scanning, persistence and the task-scheduling index."""

from .discovery import is_under_any, normalize_roots, scan_root, scan_roots
from .events import EVENT_NAMES, EventRegistry
from .manager import FileIndex, index, load
from .models import Task, TaskAction
from .persistence import read_table, write_table
from .scheduler import TaskQueue, io_pool, task_pool
from .table import FileTable, table_union

__all__ = [
    "EVENT_NAMES",
    "EventRegistry",
    "FileIndex",
    "FileTable",
    "Task",
    "TaskAction",
    "TaskQueue",
    "index",
    "io_pool",
    "is_under_any",
    "load",
    "normalize_roots",
    "read_table",
    "scan_root",
    "scan_roots",
    "table_union",
    "task_pool",
    "write_table",
]
