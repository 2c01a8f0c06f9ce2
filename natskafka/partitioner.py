"""A partitioner that sends each message to the partition that has received the fewest bytes."""

from __future__ import annotations

import threading
from typing import Hashable

from natskafka.packing import pack_int32, unpack_int32


def _length(data: bytes | str | None) -> int:
    if data is None:
        return 0
    if isinstance(data, str):
        return len(data.encode("utf-8"))
    return len(data)


class LeastBytesPartitioner:
    """Spreads messages across partitions by the number of bytes each has received."""

    def __init__(self, topic: str | None = None) -> None:
        # The topic is accepted for interface compatibility but not used.
        self.topic = topic
        self.byte_counters: dict[Hashable, int] = {}
        self._lock = threading.RLock()

    def requires_consistency(self) -> bool:
        """The same key need not always land on the same partition."""
        return False

    def partition(self, key: bytes | str | None, value: bytes | str | None, num_partitions: int) -> int:
        """Choose a partition for a message and charge its size to that partition."""
        if num_partitions <= 0:
            raise ValueError("number of partitions must be positive")
        with self._lock:
            # Partition count shrank: drop counters for the vanished partitions.
            for index in range(len(self.byte_counters) - 1, num_partitions - 1, -1):
                self.byte_counters.pop(pack_int32(index), None)
            # Partition count grew: start new partitions at zero.
            for index in range(len(self.byte_counters), num_partitions):
                self.byte_counters[pack_int32(index)] = 0

            chosen = self.find_partition_with_min_bytes()
            self.byte_counters[chosen] += _length(key) + _length(value)
            return unpack_int32(chosen)

    def find_partition_with_min_bytes(self) -> Hashable | None:
        """Return the counter key with the fewest bytes, or None when there are none."""
        with self._lock:
            if not self.byte_counters:
                return None
            return min(self.byte_counters.items(), key=lambda item: item[1])[0]