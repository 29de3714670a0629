"""Physical page allocator handing out 4096-byte pages of a memory array."""

from __future__ import annotations

import threading
from typing import List

PGSIZE = 4096
_JUNK = b"\x01" * PGSIZE


class AllocatorError(Exception):
    """Raised for a bad free or when no pages are left."""


class PageAllocator:
    """Free list of pages between ``end`` and ``phystop`` in ``memory``."""

    def __init__(self, memory: bytearray, end: int, phystop: int):
        if not 0 <= end <= phystop <= len(memory):
            raise ValueError("need 0 <= end <= phystop <= len(memory)")
        self.memory = memory
        self.end = end
        self.phystop = phystop
        self._free: List[int] = []
        self._lock = threading.Lock()

    @property
    def available(self) -> int:
        """Number of pages on the free list."""
        return len(self._free)

    def free_range(self, start: int, stop: int) -> None:
        """Free every whole page from ``start`` rounded up to ``stop``."""
        page = -(-start // PGSIZE) * PGSIZE
        while page + PGSIZE <= stop:
            self.free(page)
            page += PGSIZE

    def free(self, addr: int) -> None:
        """Return a page to the free list, filling it with junk."""
        if addr % PGSIZE or addr < self.end or addr >= self.phystop:
            raise AllocatorError(f"kfree: bad page address {addr:#x}")
        self.memory[addr : addr + PGSIZE] = _JUNK
        with self._lock:
            self._free.append(addr)

    def alloc(self) -> int:
        """Address of a free page."""
        with self._lock:
            if not self._free:
                raise AllocatorError("out of pages")
            return self._free.pop()