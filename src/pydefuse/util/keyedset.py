"""An insertion-ordered set whose membership is decided by a derived key.

Analysis facts (references, blocks, postdominators, dataflow edges) are value
objects compared by an identity string rather than by object identity. Each
collection binds a key function; the ordering only makes output deterministic.
"""

from typing import Callable, Dict, Generic, Iterable, Iterator, Optional, TypeVar

T = TypeVar("T")


class KeyedSet(Generic[T]):
    __slots__ = ("_key", "_items")

    def __init__(self, key: Callable[[T], str], items: Iterable[T] = ()):
        self._key = key
        self._items: Dict[str, T] = {}
        for item in items:
            self.add(item)

    def _derive(self, items: Iterable[T]) -> "KeyedSet[T]":
        result = self.__class__.__new__(self.__class__)
        KeyedSet.__init__(result, self._key, items)
        return result

    def add(self, *items: T) -> None:
        for item in items:
            k = self._key(item)
            if k not in self._items:
                self._items[k] = item

    def remove(self, item: T) -> None:
        self._items.pop(self._key(item), None)

    def has(self, item: T) -> bool:
        return self._key(item) in self._items

    __contains__ = has

    def get(self, item: T) -> Optional[T]:
        """Return the stored member sharing item's key, if any."""
        return self._items.get(self._key(item))

    def take(self) -> T:
        """Remove and return the first member."""
        if not self._items:
            raise KeyError("take from an empty set")
        k = next(iter(self._items))
        return self._items.pop(k)

    def keys(self):
        return self._items.keys()

    @property
    def items(self):
        return list(self._items.values())

    @property
    def size(self) -> int:
        return len(self._items)

    @property
    def empty(self) -> bool:
        return not self._items

    def union(self, *others: "KeyedSet[T]") -> "KeyedSet[T]":
        result = self._derive(self._items.values())
        for other in others:
            result.add(*other)
        return result

    def intersect(self, other: "KeyedSet[T]") -> "KeyedSet[T]":
        return self._derive(item for item in self if other.has(item))

    def minus(self, other: "KeyedSet[T]") -> "KeyedSet[T]":
        return self._derive(item for item in self if not other.has(item))

    def filter(self, predicate: Callable[[T], bool]) -> "KeyedSet[T]":
        return self._derive(item for item in self if predicate(item))

    def some(self, predicate: Callable[[T], bool]) -> bool:
        return any(predicate(item) for item in self)

    def equals(self, other: "KeyedSet[T]") -> bool:
        return self._items.keys() == other._items.keys()

    def __eq__(self, other):
        if not isinstance(other, KeyedSet):
            return NotImplemented
        return self.equals(other)

    __hash__ = None

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __repr__(self):
        return "%s(%r)" % (type(self).__name__, list(self._items))
