"""Open files: a table of reference-counted file structures over inodes or pipes."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, List, Optional

from .fs import FileSystem, FsError, Inode, Stat
from .layout import BSIZE


class FileKind(enum.Enum):
    NONE = 0
    PIPE = 1
    INODE = 2


@dataclass(eq=False)
class OpenFile:
    """An open file. A pipe is any object with read(n), write(data) and close(writable)."""

    kind: FileKind = FileKind.NONE
    ref: int = 0
    readable: bool = False
    writable: bool = False
    pipe: Any = None
    inode: Optional[Inode] = None
    off: int = 0


class FileTable:
    """A fixed pool of open files."""

    def __init__(self, fs: FileSystem, nfile: int = 100, maxopblocks: int = 10):
        self.fs = fs
        self._files: List[OpenFile] = [OpenFile() for _ in range(nfile)]
        # Leave room for the inode, indirect block, bitmap and unaligned writes.
        self.max_write = ((maxopblocks - 1 - 1 - 2) // 2) * BSIZE
        if self.max_write <= 0:
            raise ValueError("maxopblocks too small to write anything")

    def alloc(self) -> OpenFile:
        for f in self._files:
            if f.ref == 0:
                f.ref = 1
                return f
        raise FsError("file table full")

    def dup(self, f: OpenFile) -> OpenFile:
        if f.ref < 1:
            raise FsError("filedup")
        f.ref += 1
        return f

    def close(self, f: OpenFile) -> None:
        """Drop a reference; the last one releases the pipe or inode."""
        if f.ref < 1:
            raise FsError("fileclose")
        f.ref -= 1
        if f.ref > 0:
            return
        kind, pipe, inode, writable = f.kind, f.pipe, f.inode, f.writable
        f.kind = FileKind.NONE
        f.pipe = None
        f.inode = None
        if kind is FileKind.PIPE:
            pipe.close(writable)
        elif kind is FileKind.INODE:
            with self.fs.log.transaction():
                self.fs.put(inode)

    def stat(self, f: OpenFile) -> Stat:
        if f.kind is not FileKind.INODE:
            raise FsError("not an inode file")
        return self.fs.stat(self.fs.lock(f.inode))

    def read(self, f: OpenFile, n: int) -> bytes:
        if not f.readable:
            raise FsError("file not readable")
        if f.kind is FileKind.PIPE:
            return f.pipe.read(n)
        if f.kind is FileKind.INODE:
            self.fs.lock(f.inode)
            data = self.fs.read(f.inode, f.off, n)
            f.off += len(data)
            return data
        raise FsError("fileread")

    def write(self, f: OpenFile, data) -> int:
        """Write all of ``data``, a few blocks per transaction; return its length."""
        if not f.writable:
            raise FsError("file not writable")
        data = bytes(data)
        if f.kind is FileKind.PIPE:
            return f.pipe.write(data)
        if f.kind is FileKind.INODE:
            i = 0
            while i < len(data):
                chunk = data[i : i + self.max_write]
                with self.fs.log.transaction():
                    self.fs.lock(f.inode)
                    r = self.fs.write(f.inode, chunk, f.off)
                    f.off += r
                if r != len(chunk):
                    raise FsError("short filewrite")
                i += r
            return len(data)
        raise FsError("filewrite")