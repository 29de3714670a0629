"""Write-ahead redo log making multi-block file system updates atomic.

Operations are bracketed by ``begin_op`` and ``end_op`` (or the
``transaction`` context manager). Modified buffers are recorded with
``write``; when the last outstanding operation ends, the recorded blocks are
copied to the log area, the header is written (the commit point), the blocks
are installed at their home locations and the header is cleared.
"""

from __future__ import annotations

import struct
import threading
from contextlib import contextmanager
from typing import Iterator, List

from .bufcache import Buffer, BufferCache
from .layout import BSIZE, SuperBlock

_INT = struct.Struct("<i")


class LogError(Exception):
    """Raised when the log is misused or cannot hold a transaction."""


class Log:
    """The on-disk log of one device."""

    def __init__(
        self,
        cache: BufferCache,
        dev: int,
        superblock: SuperBlock,
        logsize: int,
        maxopblocks: int,
    ):
        if _INT.size * (logsize + 1) >= BSIZE:
            raise LogError("initlog: too big logheader")
        if maxopblocks > logsize:
            raise LogError("log cannot hold a single operation")
        self.cache = cache
        self.dev = dev
        self.start = superblock.logstart
        self.size = superblock.nlog
        self.logsize = logsize
        self.maxopblocks = maxopblocks
        self.outstanding = 0
        self.committing = False
        self.blocks: List[int] = []
        self._cond = threading.Condition()
        self.recover()

    def _read_head(self) -> None:
        buf = self.cache.read(self.dev, self.start)
        try:
            (n,) = _INT.unpack_from(buf.data, 0)
            if not 0 <= n <= self.logsize:
                raise LogError(f"corrupt log header: {n} blocks")
            self.blocks = list(struct.unpack_from(f"<{n}i", buf.data, _INT.size))
        finally:
            self.cache.release(buf)

    def _write_head(self) -> None:
        buf = self.cache.read(self.dev, self.start)
        try:
            n = len(self.blocks)
            struct.pack_into(f"<i{n}i", buf.data, 0, n, *self.blocks)
            self.cache.write(buf)
        finally:
            self.cache.release(buf)

    def _copy(self, src_blockno: int, dst_blockno: int) -> None:
        src = self.cache.read(self.dev, src_blockno)
        try:
            dst = self.cache.read(self.dev, dst_blockno)
            try:
                dst.data[:] = src.data
                self.cache.write(dst)
            finally:
                self.cache.release(dst)
        finally:
            self.cache.release(src)

    def _write_log(self) -> None:
        for tail, blockno in enumerate(self.blocks):
            self._copy(blockno, self.start + tail + 1)

    def _install(self) -> None:
        for tail, blockno in enumerate(self.blocks):
            self._copy(self.start + tail + 1, blockno)

    def _commit(self) -> None:
        if self.blocks:
            self._write_log()
            self._write_head()
            self._install()
            self.blocks = []
            self._write_head()

    def recover(self) -> None:
        """Install any committed transaction left in the log, then clear it."""
        self._read_head()
        self._install()
        self.blocks = []
        self._write_head()

    def begin_op(self) -> None:
        """Start an operation, waiting while a commit runs or space is short."""
        with self._cond:
            while (
                self.committing
                or len(self.blocks) + (self.outstanding + 1) * self.maxopblocks
                > self.logsize
            ):
                self._cond.wait()
            self.outstanding += 1

    def end_op(self) -> None:
        """End an operation; the last one to end commits the transaction."""
        with self._cond:
            self.outstanding -= 1
            if self.committing:
                raise LogError("log.committing")
            do_commit = self.outstanding == 0
            if do_commit:
                self.committing = True
            else:
                self._cond.notify_all()

        if do_commit:
            try:
                self._commit()
            finally:
                with self._cond:
                    self.committing = False
                    self._cond.notify_all()

    @contextmanager
    def transaction(self) -> Iterator["Log"]:
        """Run the body as one operation."""
        self.begin_op()
        try:
            yield self
        finally:
            self.end_op()

    def write(self, buf: Buffer) -> None:
        """Record a modified buffer; it is written to disk at commit."""
        with self._cond:
            if len(self.blocks) >= self.logsize or len(self.blocks) >= self.size - 1:
                raise LogError("too big a transaction")
            if self.outstanding < 1:
                raise LogError("log_write outside of trans")
            if buf.blockno not in self.blocks:
                self.blocks.append(buf.blockno)
            buf.dirty = True