"""
Immutable, sorted lookup tables keyed by fixed-size byte strings.

Used for 4-byte selector dispatch (functions, custom errors) and for 32-byte
event signature hashes. Keys are sorted once at construction; lookups are a
binary search over the sorted key tuple.
"""

from __future__ import annotations

from bisect import bisect_left
from typing import Generic, Iterable, Iterator, Optional, Tuple, TypeVar

from ..errors import InvalidTypeDescriptor

T = TypeVar("T")


class SortedTable(Generic[T]):
    __slots__ = ("_keys", "_items", "_width")

    def __init__(self, entries: Iterable[Tuple[bytes, T]], *, width: int) -> None:
        pairs = sorted(((bytes(k), v) for k, v in entries), key=lambda kv: kv[0])
        for i, (k, _) in enumerate(pairs):
            if len(k) != width:
                raise InvalidTypeDescriptor(f"table key must be {width} bytes", key=k)
            if i and pairs[i - 1][0] == k:
                raise InvalidTypeDescriptor("duplicate table key", key=k)
        self._keys: Tuple[bytes, ...] = tuple(k for k, _ in pairs)
        self._items: Tuple[T, ...] = tuple(v for _, v in pairs)
        self._width = width

    @property
    def keys(self) -> Tuple[bytes, ...]:
        return self._keys

    def get(self, key: bytes) -> Optional[T]:
        i = bisect_left(self._keys, key)
        if i < len(self._keys) and self._keys[i] == key:
            return self._items[i]
        return None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, (bytes, bytearray)) and self.get(bytes(key)) is not None

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)


__all__ = ["SortedTable"]
