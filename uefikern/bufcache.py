"""Block buffer cache over an in-memory disk.

A buffer is obtained with ``read``, written through with ``write`` and handed
back with ``release``. Only one holder at a time may use a buffer; the cache
keeps released buffers in most-recently-used order and recycles the least
recently used clean, unreferenced one when a new block is needed.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import List

from .layout import BSIZE


class CacheError(Exception):
    """Raised when the cache or the disk is used in a way it cannot serve."""


@dataclass(eq=False)
class Buffer:
    """A cached copy of one disk block."""

    dev: int = 0
    blockno: int = 0
    valid: bool = False
    dirty: bool = False
    refcnt: int = 0
    data: bytearray = field(default_factory=lambda: bytearray(BSIZE), repr=False)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def locked(self) -> bool:
        return self.lock.locked()


class MemoryDisk:
    """A disk whose blocks live in memory."""

    def __init__(self, image, dev: int = 1):
        self.image = bytearray(image)
        if len(self.image) % BSIZE:
            raise ValueError(f"image size {len(self.image)} is not a multiple of {BSIZE}")
        self.dev = dev

    def block_count(self) -> int:
        return len(self.image) // BSIZE

    def sync(self, buf: Buffer) -> None:
        """Write a dirty buffer to disk, or fill an invalid one from disk."""
        if not buf.locked:
            raise CacheError("iderw: buf not locked")
        if buf.valid and not buf.dirty:
            raise CacheError("iderw: nothing to do")
        if buf.dev != self.dev:
            raise CacheError(f"iderw: request not for disk {self.dev}")
        if not 0 <= buf.blockno < self.block_count():
            raise CacheError("iderw: block out of range")

        start = buf.blockno * BSIZE
        if buf.dirty:
            buf.dirty = False
            self.image[start : start + BSIZE] = buf.data
        else:
            buf.data[:] = self.image[start : start + BSIZE]
        buf.valid = True


class BufferCache:
    """A fixed pool of buffers kept in most-recently-used order."""

    def __init__(self, disk: MemoryDisk, nbuf: int = 30):
        if nbuf < 1:
            raise ValueError("the cache needs at least one buffer")
        self.disk = disk
        self._lock = threading.Lock()
        self._mru: List[Buffer] = [Buffer() for _ in range(nbuf)]

    def _get(self, dev: int, blockno: int) -> Buffer:
        with self._lock:
            found = next(
                (b for b in self._mru if b.dev == dev and b.blockno == blockno), None
            )
            if found is not None:
                found.refcnt += 1
            else:
                # A dirty buffer is still in use by the log even when unreferenced.
                found = next(
                    (b for b in reversed(self._mru) if b.refcnt == 0 and not b.dirty),
                    None,
                )
                if found is None:
                    raise CacheError("bget: no buffers")
                found.dev = dev
                found.blockno = blockno
                found.valid = False
                found.dirty = False
                found.refcnt = 1
        found.lock.acquire()
        return found

    def read(self, dev: int, blockno: int) -> Buffer:
        """Return a locked buffer holding the contents of the block."""
        buf = self._get(dev, blockno)
        if not buf.valid:
            try:
                self.disk.sync(buf)
            except CacheError:
                self.release(buf)
                raise
        return buf

    def write(self, buf: Buffer) -> None:
        """Write the buffer's contents to disk; the buffer must be held."""
        if not buf.locked:
            raise CacheError("bwrite")
        buf.dirty = True
        self.disk.sync(buf)

    def release(self, buf: Buffer) -> None:
        """Hand back a held buffer, moving it to the front when unreferenced."""
        if not buf.locked:
            raise CacheError("brelse")
        buf.lock.release()
        with self._lock:
            buf.refcnt -= 1
            if buf.refcnt == 0:
                self._mru.remove(buf)
                self._mru.insert(0, buf)