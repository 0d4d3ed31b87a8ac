"""
Container types backing the session and scoring engine.

KeyedTable holds session answers and the in-memory registries. RankHeap
orders results for the leaderboard. HistoryStack records navigation moves.
"""
from typing import Any, Callable, Iterator, List, Optional, Tuple


DEFAULT_CAPACITY = 53
HASH_PRIME = 31
HASH_PREFIX_LENGTH = 100


def _truncated_mod(value: int, modulus: int) -> int:
    """Remainder carrying the sign of the dividend."""
    remainder = abs(value) % modulus
    return -remainder if value < 0 else remainder


class KeyedTable:
    """
    Hash map with a fixed bucket array and per-bucket ordered chains.

    The table never resizes; with many more keys than buckets lookups
    degrade towards a linear scan.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("KeyedTable capacity must be positive")
        self._capacity = capacity
        self._buckets: List[Optional[List[List[Any]]]] = [None] * capacity
        self._count = 0

    def _hash(self, key: Any) -> int:
        """
        Polynomial rolling hash over the first characters of the key's text.

        Args:
            key: Any value; its ``str()`` form is hashed

        Returns:
            Bucket index in ``[0, capacity)``
        """
        text = str(key)
        total = 0
        for char in text[:HASH_PREFIX_LENGTH]:
            value = ord(char) - 96
            total = _truncated_mod(total * HASH_PRIME + value, self._capacity)
        return abs(total)

    def _find(self, key: Any) -> Tuple[Optional[List[List[Any]]], int]:
        bucket = self._buckets[self._hash(key)]
        if bucket is not None:
            for position, pair in enumerate(bucket):
                if pair[0] == key:
                    return bucket, position
        return bucket, -1

    def set(self, key: Any, value: Any) -> None:
        """Insert or overwrite the value stored under key."""
        index = self._hash(key)
        bucket = self._buckets[index]
        if bucket is None:
            bucket = self._buckets[index] = []
        for pair in bucket:
            if pair[0] == key:
                pair[1] = value
                return
        bucket.append([key, value])
        self._count += 1

    def get(self, key: Any, default: Any = None) -> Any:
        """Return the stored value, or default when the key is absent."""
        bucket, position = self._find(key)
        if position < 0:
            return default
        return bucket[position][1]

    def has(self, key: Any) -> bool:
        return self._find(key)[1] >= 0

    def delete(self, key: Any) -> bool:
        """Remove key if present. Returns True when something was removed."""
        bucket, position = self._find(key)
        if position < 0:
            return False
        del bucket[position]
        self._count -= 1
        return True

    def keys(self) -> List[Any]:
        return [pair[0] for bucket in self._buckets if bucket for pair in bucket]

    def values(self) -> List[Any]:
        return [pair[1] for bucket in self._buckets if bucket for pair in bucket]

    def items(self) -> List[Tuple[Any, Any]]:
        return [(pair[0], pair[1]) for bucket in self._buckets if bucket for pair in bucket]

    def clear(self) -> None:
        self._buckets = [None] * self._capacity
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return self._count

    def __contains__(self, key: Any) -> bool:
        return self.has(key)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.keys())


def _score_of(item: Any) -> float:
    if isinstance(item, dict):
        return item['score']
    return item.score


def compare_by_score(a: Any, b: Any) -> float:
    """Default heap ordering: larger ``score`` ranks higher."""
    return _score_of(a) - _score_of(b)


class RankHeap:
    """Array-backed binary max-heap ordered by a comparator."""

    def __init__(self, compare: Optional[Callable[[Any, Any], float]] = None):
        """
        Initialize the heap.

        Args:
            compare: Returns a positive number when its first argument should
                rank above the second, negative when below, zero when equal
        """
        self._items: List[Any] = []
        self._compare = compare or compare_by_score

    def insert(self, item: Any) -> None:
        self._items.append(item)
        self._sift_up(len(self._items) - 1)

    def extract_max(self) -> Optional[Any]:
        """Remove and return the highest ranked item, or None when empty."""
        if not self._items:
            return None
        top = self._items[0]
        last = self._items.pop()
        if self._items:
            self._items[0] = last
            self._sift_down(0)
        return top

    def peek(self) -> Optional[Any]:
        return self._items[0] if self._items else None

    def to_sorted_list(self) -> List[Any]:
        """Return every item in non-increasing order without draining the heap."""
        drain = RankHeap(self._compare)
        drain._items = list(self._items)
        ordered = []
        while drain._items:
            ordered.append(drain.extract_max())
        return ordered

    def clear(self) -> None:
        self._items = []

    def __len__(self) -> int:
        return len(self._items)

    def _sift_up(self, index: int) -> None:
        items = self._items
        while index > 0:
            parent = (index - 1) // 2
            if self._compare(items[index], items[parent]) <= 0:
                break
            items[index], items[parent] = items[parent], items[index]
            index = parent

    def _sift_down(self, index: int) -> None:
        items = self._items
        length = len(items)
        while True:
            largest = index
            left, right = 2 * index + 1, 2 * index + 2
            if left < length and self._compare(items[left], items[largest]) > 0:
                largest = left
            if right < length and self._compare(items[right], items[largest]) > 0:
                largest = right
            if largest == index:
                return
            items[index], items[largest] = items[largest], items[index]
            index = largest


class HistoryStack:
    """LIFO stack of previously visited question indices."""

    def __init__(self):
        self._items: List[int] = []

    def push(self, index: int) -> None:
        self._items.append(index)

    def pop(self) -> Optional[int]:
        return self._items.pop() if self._items else None

    def peek(self) -> Optional[int]:
        return self._items[-1] if self._items else None

    def is_empty(self) -> bool:
        return not self._items

    def clear(self) -> None:
        self._items = []

    @property
    def size(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)
