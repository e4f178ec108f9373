"""Fixed addresses and capability ranges, and interrupt vector allocation."""

from __future__ import annotations

import threading

STATIC_CAP_BASE = 0xF000
SELF_START_ADDR = 0x200000
HOST_DYNAMIC_SMALL_MAPPING_BASE = 0x1_0000_0000
HOST_DYNAMIC_SMALL_MAPPING_END = 0x1_4000_0000

_MAX_VECTOR = 0xFF


class IntrVectorAllocator:
    """Hands out interrupt vectors in increasing order."""

    def __init__(self, next_vector: int = 0) -> None:
        self._next = next_vector
        self._lock = threading.Lock()

    def allocate(self) -> int:
        with self._lock:
            vector = self._next
            self._next += 1
        if not 0 <= vector <= _MAX_VECTOR:
            raise OverflowError("intr vector overflow")
        return vector


_default_allocator = IntrVectorAllocator()


def allocate_intr_vector() -> int:
    """Allocate the next vector from the process-wide allocator."""
    return _default_allocator.allocate()