# provenance/history/view.py
from collections.abc import Sequence
from typing import Callable, Iterator, List, Optional, overload

from provenance.core.types import Checkpoint

PageReader = Callable[[int, int], List[Checkpoint]]


class HistoryView(Sequence):
    """
    Lazy, restartable view over one item's checkpoints.

    The length is pinned when the view is created. Histories only grow, so the
    first `len(view)` entries never change and every pass over the view sees
    the same snapshot, even while new checkpoints are being appended.
    """

    def __init__(self, item_id: str, length: int, reader: PageReader, page_size: int = 100):
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.item_id = item_id
        self._length = length
        self._reader = reader
        self.page_size = page_size

    def __len__(self) -> int:
        return self._length

    def __iter__(self) -> Iterator[Checkpoint]:
        offset = 0
        while offset < self._length:
            page = self.page(offset, self.page_size)
            if not page:
                return
            yield from page
            offset += len(page)

    @overload
    def __getitem__(self, index: int) -> Checkpoint: ...

    @overload
    def __getitem__(self, index: slice) -> List[Checkpoint]: ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            start, stop, step = index.indices(self._length)
            if step != 1:
                return list(self)[index]
            return self.page(start, max(0, stop - start))
        if index < 0:
            index += self._length
        if not 0 <= index < self._length:
            raise IndexError("history index out of range")
        return self._reader(index, 1)[0]

    def page(self, offset: int = 0, limit: Optional[int] = None) -> List[Checkpoint]:
        """Entries [offset, offset+limit) of the snapshot; limit=None reads to the end."""
        if offset < 0 or (limit is not None and limit < 0):
            raise ValueError("offset and limit must be >= 0")
        end = self._length if limit is None else min(self._length, offset + limit)
        if offset >= end:
            return []
        return self._reader(offset, end - offset)

    def latest(self) -> Checkpoint:
        return self[-1]

    def __repr__(self) -> str:
        return f"HistoryView(item_id={self.item_id!r}, length={self._length})"
