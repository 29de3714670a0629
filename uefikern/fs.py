"""File system: block allocation, inodes, file contents, directories and path names.

Every change to on-disk state goes through the log, so callers that allocate,
write, link or drop the last link of an inode must do so inside
``log.transaction()``.
"""

from __future__ import annotations

import struct
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from .bufcache import Buffer, BufferCache
from .layout import (
    BPB,
    BSIZE,
    DINODE_SIZE,
    DIRENT_SIZE,
    DIRSIZ,
    IPB,
    MAXFILE,
    NDIRECT,
    NINDIRECT,
    ROOTINO,
    DirEntry,
    DiskInode,
    FileType,
    SuperBlock,
    bitmap_block,
    inode_block,
)
from .log import Log

_UINT = struct.Struct("<I")


class FsError(Exception):
    """Raised when a file system operation cannot be carried out."""


@dataclass(frozen=True)
class Stat:
    """Metadata about an inode."""

    dev: int
    ino: int
    type: int
    nlink: int
    size: int


@dataclass(eq=False)
class Inode:
    """In-memory copy of an inode; ``valid`` tells whether it was read from disk."""

    dev: int = 0
    inum: int = 0
    ref: int = 0
    valid: bool = False
    type: int = 0
    major: int = 0
    minor: int = 0
    nlink: int = 0
    size: int = 0
    addrs: List[int] = field(default_factory=lambda: [0] * (NDIRECT + 1))


def skip_element(path: str) -> Optional[Tuple[str, str]]:
    """Split off the first path element: (name, rest without leading slashes), or None."""
    path = path.lstrip("/")
    if not path:
        return None
    name, _, rest = path.partition("/")
    return name[:DIRSIZ], rest.lstrip("/")


class FileSystem:
    """The file system on one device, with a cache of in-use inodes."""

    def __init__(self, cache: BufferCache, log: Log, dev: int = 1, ninode: int = 50):
        self.cache = cache
        self.log = log
        self.dev = dev
        self._inodes = [Inode() for _ in range(ninode)]
        # Major device number -> object with read(inode, n) and write(inode, data).
        self.devsw: Dict[int, object] = {}
        with self._block(1) as buf:
            self.superblock = SuperBlock.unpack(buf.data)

    @contextmanager
    def _block(self, blockno: int) -> Iterator[Buffer]:
        buf = self.cache.read(self.dev, blockno)
        try:
            yield buf
        finally:
            self.cache.release(buf)

    # Blocks.

    def _zero(self, blockno: int) -> None:
        with self._block(blockno) as buf:
            buf.data[:] = bytes(BSIZE)
            self.log.write(buf)

    def _balloc(self) -> int:
        sb = self.superblock
        for base in range(0, sb.size, BPB):
            found = None
            with self._block(bitmap_block(base, sb)) as buf:
                for bi in range(min(BPB, sb.size - base)):
                    mask = 1 << (bi % 8)
                    if not buf.data[bi // 8] & mask:
                        buf.data[bi // 8] |= mask
                        self.log.write(buf)
                        found = base + bi
                        break
            if found is not None:
                self._zero(found)
                return found
        raise FsError("balloc: out of blocks")

    def _bfree(self, blockno: int) -> None:
        with self._block(bitmap_block(blockno, self.superblock)) as buf:
            bi = blockno % BPB
            mask = 1 << (bi % 8)
            if not buf.data[bi // 8] & mask:
                raise FsError("freeing free block")
            buf.data[bi // 8] &= ~mask & 0xFF
            self.log.write(buf)

    # Inodes.

    def _slot(self, inum: int) -> Tuple[int, int]:
        return inode_block(inum, self.superblock), (inum % IPB) * DINODE_SIZE

    def alloc_inode(self, type: int) -> Inode:
        """Mark a free on-disk inode as allocated with ``type``; return it referenced."""
        for inum in range(1, self.superblock.ninodes):
            blockno, start = self._slot(inum)
            with self._block(blockno) as buf:
                dinode = DiskInode.unpack(buf.data[start : start + DINODE_SIZE])
                if dinode.type != FileType.FREE:
                    continue
                buf.data[start : start + DINODE_SIZE] = DiskInode(type=int(type)).pack()
                self.log.write(buf)
            return self.get_inode(inum)
        raise FsError("ialloc: no inodes")

    def get_inode(self, inum: int) -> Inode:
        """Referenced in-memory inode for ``inum``; not read from disk."""
        empty = None
        for ip in self._inodes:
            if ip.ref > 0 and ip.dev == self.dev and ip.inum == inum:
                ip.ref += 1
                return ip
            if empty is None and ip.ref == 0:
                empty = ip
        if empty is None:
            raise FsError("iget: no inodes")
        empty.dev = self.dev
        empty.inum = inum
        empty.ref = 1
        empty.valid = False
        return empty

    def lock(self, inode: Inode) -> Inode:
        """Make sure the inode's contents have been read from disk."""
        if inode.ref < 1:
            raise FsError("ilock")
        if not inode.valid:
            blockno, start = self._slot(inode.inum)
            with self._block(blockno) as buf:
                dinode = DiskInode.unpack(buf.data[start : start + DINODE_SIZE])
            inode.type = dinode.type
            inode.major = dinode.major
            inode.minor = dinode.minor
            inode.nlink = dinode.nlink
            inode.size = dinode.size
            inode.addrs = list(dinode.addrs)
            inode.valid = True
            if inode.type == FileType.FREE:
                raise FsError("ilock: no type")
        return inode

    def update(self, inode: Inode) -> None:
        """Copy the in-memory inode to disk."""
        blockno, start = self._slot(inode.inum)
        with self._block(blockno) as buf:
            buf.data[start : start + DINODE_SIZE] = DiskInode(
                inode.type, inode.major, inode.minor, inode.nlink, inode.size, list(inode.addrs)
            ).pack()
            self.log.write(buf)

    def put(self, inode: Inode) -> None:
        """Drop a reference; the last reference to an unlinked inode frees it."""
        if inode.ref < 1:
            raise FsError("iput")
        if inode.valid and inode.nlink == 0 and inode.ref == 1:
            self._truncate(inode)
            inode.type = FileType.FREE
            self.update(inode)
            inode.valid = False
        inode.ref -= 1

    def _bmap(self, inode: Inode, bn: int) -> int:
        if bn < NDIRECT:
            if not inode.addrs[bn]:
                inode.addrs[bn] = self._balloc()
            return inode.addrs[bn]
        bn -= NDIRECT
        if bn < NINDIRECT:
            if not inode.addrs[NDIRECT]:
                inode.addrs[NDIRECT] = self._balloc()
            with self._block(inode.addrs[NDIRECT]) as buf:
                (addr,) = _UINT.unpack_from(buf.data, bn * 4)
                if not addr:
                    addr = self._balloc()
                    _UINT.pack_into(buf.data, bn * 4, addr)
                    self.log.write(buf)
            return addr
        raise FsError("bmap: out of range")

    def _truncate(self, inode: Inode) -> None:
        for i in range(NDIRECT):
            if inode.addrs[i]:
                self._bfree(inode.addrs[i])
                inode.addrs[i] = 0
        if inode.addrs[NDIRECT]:
            with self._block(inode.addrs[NDIRECT]) as buf:
                addrs = struct.unpack_from(f"<{NINDIRECT}I", buf.data)
            for addr in addrs:
                if addr:
                    self._bfree(addr)
            self._bfree(inode.addrs[NDIRECT])
            inode.addrs[NDIRECT] = 0
        inode.size = 0
        self.update(inode)

    def stat(self, inode: Inode) -> Stat:
        return Stat(inode.dev, inode.inum, inode.type, inode.nlink, inode.size)

    # Contents.

    def _device(self, inode: Inode, op: str):
        device = self.devsw.get(inode.major)
        if device is None or not hasattr(device, op):
            raise FsError(f"no device {inode.major} to {op}")
        return getattr(device, op)

    def read(self, inode: Inode, offset: int, n: int) -> bytes:
        """Up to ``n`` bytes starting at ``offset``; fewer at the end of the file."""
        if inode.type == FileType.DEV:
            return self._device(inode, "read")(inode, n)
        if offset < 0 or n < 0 or offset > inode.size:
            raise FsError(f"read at {offset} outside file of {inode.size} bytes")
        n = min(n, inode.size - offset)
        out = bytearray()
        off = offset
        while len(out) < n:
            with self._block(self._bmap(inode, off // BSIZE)) as buf:
                start = off % BSIZE
                m = min(n - len(out), BSIZE - start)
                out += buf.data[start : start + m]
            off += m
        return bytes(out)

    def write(self, inode: Inode, data, offset: int) -> int:
        """Write ``data`` at ``offset``, growing the file; return the bytes written."""
        data = bytes(data)
        if inode.type == FileType.DEV:
            return self._device(inode, "write")(inode, data)
        n = len(data)
        if offset < 0 or offset > inode.size:
            raise FsError(f"write at {offset} outside file of {inode.size} bytes")
        if offset + n > MAXFILE * BSIZE:
            raise FsError("write past maximum file size")
        off = offset
        pos = 0
        while pos < n:
            with self._block(self._bmap(inode, off // BSIZE)) as buf:
                start = off % BSIZE
                m = min(n - pos, BSIZE - start)
                buf.data[start : start + m] = data[pos : pos + m]
                self.log.write(buf)
            pos += m
            off += m
        if n > 0 and off > inode.size:
            inode.size = off
            self.update(inode)
        return n

    # Directories.

    def _dirent(self, directory: Inode, off: int) -> DirEntry:
        raw = self.read(directory, off, DIRENT_SIZE)
        if len(raw) != DIRENT_SIZE:
            raise FsError("dirlookup read")
        return DirEntry.unpack(raw)

    def lookup(self, directory: Inode, name: str) -> Optional[Tuple[Inode, int]]:
        """(referenced inode, byte offset of the entry) for ``name``, or None."""
        if directory.type != FileType.DIR:
            raise FsError("dirlookup not DIR")
        for off in range(0, directory.size, DIRENT_SIZE):
            entry = self._dirent(directory, off)
            if entry.inum and entry.name[:DIRSIZ] == name[:DIRSIZ]:
                return self.get_inode(entry.inum), off
        return None

    def link(self, directory: Inode, name: str, inum: int) -> None:
        """Add the entry (name, inum) to ``directory``."""
        found = self.lookup(directory, name)
        if found is not None:
            self.put(found[0])
            raise FsError(f"{name!r} already exists")
        off = next(
            (
                o
                for o in range(0, directory.size, DIRENT_SIZE)
                if self._dirent(directory, o).inum == 0
            ),
            directory.size,
        )
        if self.write(directory, DirEntry(inum, name).pack(), off) != DIRENT_SIZE:
            raise FsError("dirlink")

    # Paths.

    def _namex(self, path: str, parent: bool, cwd: Optional[Inode]):
        if path.startswith("/"):
            ip = self.get_inode(ROOTINO)
        elif cwd is None:
            raise FsError("relative path without a working directory")
        else:
            cwd.ref += 1
            ip = cwd
        name = ""
        while (step := skip_element(path)) is not None:
            name, path = step
            self.lock(ip)
            if ip.type != FileType.DIR:
                self.put(ip)
                return None
            if parent and path == "":
                return ip, name
            found = self.lookup(ip, name)
            self.put(ip)
            if found is None:
                return None
            ip = found[0]
        if parent:
            self.put(ip)
            return None
        return ip, name

    def namei(self, path: str, cwd: Optional[Inode] = None) -> Optional[Inode]:
        """Referenced inode named by ``path``, or None."""
        found = self._namex(path, False, cwd)
        return None if found is None else found[0]

    def nameiparent(self, path: str, cwd: Optional[Inode] = None) -> Optional[Tuple[Inode, str]]:
        """(parent directory inode, final element) for ``path``, or None."""
        return self._namex(path, True, cwd)