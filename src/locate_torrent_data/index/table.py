"""Size-indexed table of on-disk candidate files."""

from __future__ import annotations

from collections.abc import Callable, Iterator


class FileTable:
    """Multimap from file size to the absolute paths observed with that size.

    Paths are identity keys: a path appears at most once, so no (size, path)
    pair can be stored twice. Iteration follows insertion order.
    """

    def __init__(self) -> None:
        self._sizes: dict[str, int] = {}
        self._by_size: dict[int, list[str]] = {}

    def put(self, size: int, path: str) -> None:
        """Record ``path`` with ``size``; re-putting a known path updates its size."""
        if size < 0:
            raise ValueError("size must be >= 0")
        previous = self._sizes.get(path)
        if previous == size:
            return
        if previous is not None:
            self._drop_from_size(previous, path)
            del self._sizes[path]
        self._sizes[path] = size
        self._by_size.setdefault(size, []).append(path)

    def contains(self, size: int) -> bool:
        """Return True when at least one path has ``size``."""
        return size in self._by_size

    def get(self, size: int) -> tuple[str, ...]:
        """Return all paths with ``size`` in insertion order."""
        return tuple(self._by_size.get(size, ()))

    def size_of(self, path: str) -> int | None:
        """Return the recorded size of ``path``, if present."""
        return self._sizes.get(path)

    def remove(self, path: str) -> None:
        """Delete the entry for ``path``; unknown paths are ignored."""
        size = self._sizes.pop(path, None)
        if size is None:
            return
        self._drop_from_size(size, path)

    def merge(self, other: FileTable) -> None:
        """Union ``other`` into this table; existing paths keep their entry."""
        for size, path in other:
            if path in self._sizes:
                continue
            self.put(size, path)

    def filter(self, predicate: Callable[[int, str], bool]) -> FileTable:
        """Return a new table holding only entries accepted by ``predicate``."""
        output = FileTable()
        for size, path in self:
            if predicate(size, path):
                output.put(size, path)
        return output

    def __iter__(self) -> Iterator[tuple[int, str]]:
        for path, size in list(self._sizes.items()):
            yield size, path

    def __len__(self) -> int:
        return len(self._sizes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileTable):
            return NotImplemented
        return self._sizes == other._sizes

    def __repr__(self) -> str:
        return f"FileTable(entries={len(self._sizes)}, sizes={len(self._by_size)})"

    def _drop_from_size(self, size: int, path: str) -> None:
        paths = self._by_size[size]
        paths.remove(path)
        if not paths:
            del self._by_size[size]


def table_union(first: FileTable | None, second: FileTable | None) -> FileTable | None:
    """Merge two independently built tables, dropping entries with an equal path.

    Either side may be missing, in which case the other is returned as-is.
    The first table is extended in place and returned.
    """
    if first is None:
        return second
    if second is None:
        return first
    first.merge(second)
    return first
