"""On-disk file system layout: geometry, super block, inodes and directory entries."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import List

ROOTINO = 1
BSIZE = 512
NDIRECT = 12
NINDIRECT = BSIZE // 4
MAXFILE = NDIRECT + NINDIRECT
DIRSIZ = 14

_SUPERBLOCK = struct.Struct("<7I")
_DINODE = struct.Struct(f"<4hI{NDIRECT + 1}I")
_DIRENT = struct.Struct(f"<H{DIRSIZ}s")

SUPERBLOCK_SIZE = _SUPERBLOCK.size
DINODE_SIZE = _DINODE.size
DIRENT_SIZE = _DIRENT.size

# Inodes per block and bitmap bits per block.
IPB = BSIZE // DINODE_SIZE
BPB = BSIZE * 8


class FileType(enum.IntEnum):
    """Inode types; zero marks a free on-disk inode."""

    FREE = 0
    DIR = 1
    FILE = 2
    DEV = 3


class OpenFlag(enum.IntFlag):
    """Flags accepted when opening a file."""

    RDONLY = 0x000
    WRONLY = 0x001
    RDWR = 0x002
    CREATE = 0x200


def _unpack(layout: struct.Struct, data, what: str, offset: int = 0) -> tuple:
    try:
        return layout.unpack_from(data, offset)
    except struct.error as exc:
        raise ValueError(f"truncated {what}") from exc


@dataclass
class SuperBlock:
    """Describes the disk layout of a file system image."""

    size: int = 0
    nblocks: int = 0
    ninodes: int = 0
    nlog: int = 0
    logstart: int = 0
    inodestart: int = 0
    bmapstart: int = 0

    def pack(self) -> bytes:
        return _SUPERBLOCK.pack(
            self.size,
            self.nblocks,
            self.ninodes,
            self.nlog,
            self.logstart,
            self.inodestart,
            self.bmapstart,
        )

    @classmethod
    def unpack(cls, data) -> "SuperBlock":
        return cls(*_unpack(_SUPERBLOCK, data, "super block"))


@dataclass
class DiskInode:
    """On-disk inode: type, device numbers, link count, size and block addresses."""

    type: int = 0
    major: int = 0
    minor: int = 0
    nlink: int = 0
    size: int = 0
    addrs: List[int] = field(default_factory=lambda: [0] * (NDIRECT + 1))

    def pack(self) -> bytes:
        if len(self.addrs) != NDIRECT + 1:
            raise ValueError(f"an inode holds exactly {NDIRECT + 1} addresses")
        return _DINODE.pack(
            self.type, self.major, self.minor, self.nlink, self.size, *self.addrs
        )

    @classmethod
    def unpack(cls, data) -> "DiskInode":
        values = _unpack(_DINODE, data, "inode")
        return cls(*values[:5], addrs=list(values[5:]))


@dataclass
class DirEntry:
    """Directory entry: an inode number and a name of at most DIRSIZ bytes."""

    inum: int = 0
    name: str = ""

    def pack(self) -> bytes:
        return _DIRENT.pack(self.inum, self.name.encode()[:DIRSIZ])

    @classmethod
    def unpack(cls, data) -> "DirEntry":
        inum, raw = _unpack(_DIRENT, data, "directory entry")
        return cls(inum, raw.split(b"\0", 1)[0].decode(errors="replace"))


def inode_block(inum: int, sb: SuperBlock) -> int:
    """Block holding inode ``inum``."""
    return inum // IPB + sb.inodestart


def bitmap_block(b: int, sb: SuperBlock) -> int:
    """Block of the free map holding the bit for block ``b``."""
    return b // BPB + sb.bmapstart