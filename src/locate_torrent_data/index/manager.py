"""File index controller: queued table mutation, search, persistence and signals."""

from __future__ import annotations

import itertools
import os
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future
from functools import partial

from locate_torrent_data.config import LocatorConfig, ScanOptions, default_config
from locate_torrent_data.errors import LocateError
from locate_torrent_data.index.discovery import PathInput, is_under_any, normalize_roots, scan_roots
from locate_torrent_data.index.events import EventRegistry, Listener
from locate_torrent_data.index.models import Task, TaskAction
from locate_torrent_data.index.persistence import (
    TableDestination,
    TableSource,
    read_table,
    write_table,
)
from locate_torrent_data.index.scheduler import TaskQueue, io_pool
from locate_torrent_data.index.table import FileTable
from locate_torrent_data.logging import (
    AuditEvent,
    JsonlAuditLogger,
    error_code_for,
    sanitize_metadata,
    utc_timestamp,
)
from locate_torrent_data.manifest import Manifest, ManifestFile, load_manifest
from locate_torrent_data.matching.search import locate_files

FileHandler = Callable[[ManifestFile], object]
Callback = Callable[[BaseException | None], object]


class FileIndex:
    """Searchable index of on-disk files, keyed by size.

    Every operation is queued and returns a ``Future``. Searches run
    concurrently up to the configured limit; ``add``, ``remove`` and ``load``
    hold a barrier that stops later tasks from starting until they finish.
    The table is never edited in place: mutations build a new table and swap
    the reference, so running searches keep a consistent view.

    Signals: ``match(file, manifest)`` and ``notFound(file, manifest)`` per
    file in manifest order, then ``end(files, manifest)``; ``error(error)``
    for a failed task; ``update()`` after a successful mutation.
    """

    def __init__(
        self,
        config: LocatorConfig | None = None,
        audit_logger: JsonlAuditLogger | None = None,
    ) -> None:
        self._config = config or default_config()
        self._table: FileTable | None = FileTable()
        self._table_lock = threading.Lock()
        self._events = EventRegistry()
        if audit_logger is None and self._config.audit_path is not None:
            audit_logger = JsonlAuditLogger(self._config.audit_path)
        self._audit_logger = audit_logger
        self._sequence = itertools.count(1)
        self._queue = TaskQueue(
            prepare=self._prepare,
            concurrency=self._config.concurrency,
            on_reject=self._on_reject,
        )

    @property
    def config(self) -> LocatorConfig:
        return self._config

    @property
    def table(self) -> FileTable | None:
        """Return the current table reference; None once a load has failed."""
        with self._table_lock:
            return self._table

    def on(self, event: str, listener: Listener) -> FileIndex:
        """Subscribe ``listener`` to a named signal."""
        self._events.register(event, listener)
        return self

    def off(self, event: str, listener: Listener) -> FileIndex:
        """Unsubscribe ``listener`` from a named signal."""
        self._events.unregister(event, listener)
        return self

    def search(self, manifest: object, for_each: FileHandler | None = None) -> Future[object]:
        """Locate the files of ``manifest``; resolves to the list of its files.

        ``manifest`` is a ``Manifest``, encoded metainfo bytes, or a path to a
        torrent file. A manifest that cannot be read fails the returned future
        immediately without queueing. When ``for_each`` is given it is called
        for each located file instead of emitting ``match``; it must not block
        on other tasks of this index.
        """
        try:
            parsed = load_manifest(manifest)
        except LocateError as error:
            future: Future[object] = Future()
            try:
                self._events.emit("error", error)
            finally:
                future.set_exception(error)
            return future
        return self._queue.push(
            Task(
                task_id=self._next_task_id(TaskAction.SEARCH),
                action=TaskAction.SEARCH,
                manifest=parsed,
                for_each=for_each,
            )
        )

    def add(self, paths: PathInput, options: ScanOptions | None = None) -> Future[object]:
        """Re-index the given roots: drop their old entries, then scan them."""
        return self._queue.push(
            Task(
                task_id=self._next_task_id(TaskAction.ADD),
                action=TaskAction.ADD,
                roots=normalize_roots(paths),
                options=options or self._config.scan,
            )
        )

    def remove(self, paths: PathInput) -> Future[object]:
        """Drop every entry located under the given roots."""
        return self._queue.push(
            Task(
                task_id=self._next_task_id(TaskAction.REMOVE),
                action=TaskAction.REMOVE,
                roots=normalize_roots(paths),
            )
        )

    def load(self, source: TableSource) -> Future[object]:
        """Replace the table with one read from a path or text stream.

        A failed load discards the table and rejects every queued and future
        task of this index with the same error.
        """
        return self._queue.push(
            Task(task_id=self._next_task_id(TaskAction.LOAD), action=TaskAction.LOAD, target=source)
        )

    def save(self, destination: TableDestination) -> Future[object]:
        """Write the table to a path or text stream."""
        return self._queue.push(
            Task(
                task_id=self._next_task_id(TaskAction.SAVE),
                action=TaskAction.SAVE,
                target=destination,
            )
        )

    def _next_task_id(self, action: TaskAction) -> str:
        return f"{action.value}-{next(self._sequence)}"

    def _prepare(self, task: Task) -> Callable[[], object]:
        with self._table_lock:
            table = self._table
        return partial(self._execute, task, table)

    def _execute(self, task: Task, table: FileTable | None) -> object:
        started = time.perf_counter()
        metadata: dict[str, object] = {}
        try:
            result = self._dispatch(task, table, metadata)
        except BaseException as error:
            metadata["duration_ms"] = int((time.perf_counter() - started) * 1000)
            self._record(task, error, metadata)
            self._events.emit("error", error)
            raise
        metadata["duration_ms"] = int((time.perf_counter() - started) * 1000)
        self._record(task, None, metadata)
        if task.action.mutates:
            self._events.emit("update")
        return result

    def _dispatch(
        self, task: Task, table: FileTable | None, metadata: dict[str, object]
    ) -> object:
        if task.action is TaskAction.SEARCH:
            return self._search(task, table if table is not None else FileTable(), metadata)
        if task.action is TaskAction.SAVE:
            metadata["entries"] = write_table(
                table if table is not None else FileTable(), task.target
            )
            return None
        if task.action is TaskAction.LOAD:
            self._load(task, metadata)
            return None
        if task.action is TaskAction.ADD:
            self._add(task, table, metadata)
            return None
        if task.action is TaskAction.REMOVE:
            self._remove(task, table, metadata)
            return None
        raise ValueError(f"Unsupported task action: {task.action}")

    def _search(
        self, task: Task, table: FileTable, metadata: dict[str, object]
    ) -> list[ManifestFile]:
        manifest = task.manifest
        if manifest is None:
            raise ValueError("Search task has no manifest.")
        files = manifest.fresh_files()
        locate_files(table, manifest, files, io_pool())
        located: list[ManifestFile] = []
        for file in files:
            if file.location is None:
                self._events.emit("notFound", file, manifest)
                continue
            located.append(file)
            if task.for_each is not None:
                task.for_each(file)
                continue
            self._events.emit("match", file, manifest)
        if task.for_each is not None:
            self._prune_moved(located)
        metadata["files"] = len(files)
        metadata["matched"] = len(located)
        metadata["not_found"] = len(files) - len(located)
        metadata["manifest_name"] = manifest.name
        self._events.emit("end", files, manifest)
        return files

    def _prune_moved(self, located: list[ManifestFile]) -> None:
        moved = [
            file.location
            for file in located
            if file.location is not None and not os.path.exists(file.location)
        ]
        if moved:
            self.remove(moved)

    def _load(self, task: Task, metadata: dict[str, object]) -> None:
        try:
            loaded = read_table(task.target)
        except (OSError, ValueError, LocateError) as error:
            with self._table_lock:
                self._table = None
            self._queue.kill(error)
            raise
        with self._table_lock:
            self._table = loaded
        metadata["entries"] = len(loaded)

    def _add(self, task: Task, table: FileTable | None, metadata: dict[str, object]) -> None:
        rebuilt = self._without_roots(table, task.roots)
        scan_profile: dict[str, object] = {}
        scanned = scan_roots(
            task.roots, task.options or self._config.scan, io_pool(), profile=scan_profile
        )
        rebuilt.merge(scanned)
        with self._table_lock:
            self._table = rebuilt
        metadata["roots"] = len(task.roots)
        metadata["scanned"] = len(scanned)
        metadata["entries"] = len(rebuilt)
        metadata["skipped_dirs"] = scan_profile.get("skipped_dirs", 0)

    def _remove(self, task: Task, table: FileTable | None, metadata: dict[str, object]) -> None:
        rebuilt = self._without_roots(table, task.roots)
        with self._table_lock:
            self._table = rebuilt
        metadata["roots"] = len(task.roots)
        metadata["entries"] = len(rebuilt)

    @staticmethod
    def _without_roots(table: FileTable | None, roots: tuple[str, ...]) -> FileTable:
        if table is None:
            return FileTable()
        return table.filter(lambda size, location: not is_under_any(location, roots))

    def _on_reject(self, task: Task, error: BaseException) -> None:
        self._record(task, error, {"rejected": True})
        self._events.emit("error", error)

    def _record(
        self, task: Task, error: BaseException | None, metadata: dict[str, object]
    ) -> None:
        if self._audit_logger is None:
            return
        self._audit_logger.append(
            AuditEvent(
                timestamp=utc_timestamp(),
                task_id=task.task_id,
                action=task.action.value,
                ok=error is None,
                error_code=error_code_for(error) if error is not None else None,
                metadata=sanitize_metadata(metadata),
            )
        )


def index(
    paths: PathInput,
    options: ScanOptions | None = None,
    config: LocatorConfig | None = None,
    callback: Callback | None = None,
) -> FileIndex:
    """Create a searchable file index from the contents of the given folder(s)."""
    file_index = FileIndex(config=config)
    _attach(file_index.add(paths, options), callback)
    return file_index


def load(
    source: TableSource,
    config: LocatorConfig | None = None,
    callback: Callback | None = None,
) -> FileIndex:
    """Create a file index from a table saved with ``FileIndex.save``."""
    file_index = FileIndex(config=config)
    _attach(file_index.load(source), callback)
    return file_index


def _attach(future: Future[object], callback: Callback | None) -> None:
    if callback is None:
        return
    future.add_done_callback(lambda done: callback(done.exception()))
