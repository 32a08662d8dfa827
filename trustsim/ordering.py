"""
Sorted collection used for both scheduling orders.

Items are ordered by a key computed when they are inserted, with the item's
handle appended as the final tie-break. The key is snapshotted, so an item
must be removed before the fields its key depends on change and re-inserted
afterwards.
"""

import bisect
from typing import Any, Callable, Dict, Iterator, List, Tuple

SortKey = Callable[[Any], Tuple]
Handle = Callable[[Any], int]


class OrderedQueue:
    """Ordered set of entities with snapshot keys and bisect lookups."""

    def __init__(self, sort_key: SortKey, handle: Handle):
        self._sort_key = sort_key
        self._handle = handle
        self._keys: List[Tuple] = []
        self._snapshots: Dict[int, Tuple] = {}
        self._items: Dict[int, Any] = {}

    def insert(self, item: Any):
        """Insert an item at the position given by its current key."""
        ident = self._handle(item)
        if ident in self._snapshots:
            raise KeyError(f"Item {ident} is already queued")
        key = self._sort_key(item) + (ident,)
        bisect.insort(self._keys, key)
        self._snapshots[ident] = key
        self._items[ident] = item

    def remove(self, item: Any):
        """Remove an item using the key it was inserted with."""
        ident = self._handle(item)
        key = self._snapshots.pop(ident)
        del self._items[ident]
        index = bisect.bisect_left(self._keys, key)
        del self._keys[index]

    def iter_from(self, bound: Tuple) -> Iterator[Any]:
        """
        Yield items whose key is not less than `bound`, in order.

        The bound is compared as a key prefix, so every item whose key starts
        with the bound values is included. The caller must stop iterating
        after removing an item.
        """
        index = bisect.bisect_left(self._keys, bound)
        while index < len(self._keys):
            yield self._items[self._keys[index][-1]]
            index += 1

    def __iter__(self) -> Iterator[Any]:
        return self.iter_from(())

    def __contains__(self, item: Any) -> bool:
        return self._handle(item) in self._snapshots

    def __len__(self) -> int:
        return len(self._keys)
