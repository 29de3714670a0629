"""Building a file system image holding a root directory and a set of files."""

from __future__ import annotations

import argparse
import struct
import sys
from typing import Iterable, Mapping, Tuple, Union

from .layout import (
    BPB,
    BSIZE,
    DINODE_SIZE,
    IPB,
    MAXFILE,
    NDIRECT,
    NINDIRECT,
    DirEntry,
    DiskInode,
    FileType,
    SuperBlock,
    inode_block,
)

NINODES = 200

_INDIRECT = struct.Struct(f"<{NINDIRECT}I")


class ImageBuilder:
    """Lays out boot block, super block, log, inodes, bitmap and data blocks."""

    def __init__(self, size: int, nlog: int, ninodes: int = NINODES):
        self.size = size
        self.nlog = nlog
        self.nbitmap = size // BPB + 1
        self.ninodeblocks = ninodes // IPB + 1
        self.nmeta = 2 + nlog + self.ninodeblocks + self.nbitmap
        self.nblocks = size - self.nmeta
        if self.nblocks <= 0:
            raise ValueError(f"image of {size} blocks has no room for {self.nmeta} meta blocks")
        self.superblock = SuperBlock(
            size=size,
            nblocks=self.nblocks,
            ninodes=ninodes,
            nlog=nlog,
            logstart=2,
            inodestart=2 + nlog,
            bmapstart=2 + nlog + self.ninodeblocks,
        )
        self._image = bytearray(size * BSIZE)
        self._free_inode = 1
        self.free_block = self.nmeta
        self._write_block(1, self.superblock.pack())
        self.root = self.alloc_inode(FileType.DIR)
        for name in (".", ".."):
            self.append(self.root, DirEntry(self.root, name).pack())

    def _read_block(self, blockno: int) -> bytes:
        if not 0 <= blockno < self.size:
            raise ValueError(f"block {blockno} outside image of {self.size} blocks")
        return bytes(self._image[blockno * BSIZE : (blockno + 1) * BSIZE])

    def _write_block(self, blockno: int, data: bytes) -> None:
        if not 0 <= blockno < self.size:
            raise ValueError(f"block {blockno} outside image of {self.size} blocks")
        self._image[blockno * BSIZE : (blockno + 1) * BSIZE] = bytes(data).ljust(BSIZE, b"\0")

    def _take_block(self) -> int:
        blockno = self.free_block
        self.free_block += 1
        return blockno

    def read_inode(self, inum: int) -> DiskInode:
        block = self._read_block(inode_block(inum, self.superblock))
        start = (inum % IPB) * DINODE_SIZE
        return DiskInode.unpack(block[start : start + DINODE_SIZE])

    def write_inode(self, inum: int, inode: DiskInode) -> None:
        blockno = inode_block(inum, self.superblock)
        block = bytearray(self._read_block(blockno))
        start = (inum % IPB) * DINODE_SIZE
        block[start : start + DINODE_SIZE] = inode.pack()
        self._write_block(blockno, block)

    def alloc_inode(self, type: int) -> int:
        inum = self._free_inode
        self._free_inode += 1
        self.write_inode(inum, DiskInode(type=int(type), nlink=1, size=0))
        return inum

    def _block_for(self, inode: DiskInode, fbn: int) -> int:
        if fbn < NDIRECT:
            if inode.addrs[fbn] == 0:
                inode.addrs[fbn] = self._take_block()
            return inode.addrs[fbn]
        if inode.addrs[NDIRECT] == 0:
            inode.addrs[NDIRECT] = self._take_block()
        indirect = list(_INDIRECT.unpack(self._read_block(inode.addrs[NDIRECT])))
        if indirect[fbn - NDIRECT] == 0:
            indirect[fbn - NDIRECT] = self._take_block()
            self._write_block(inode.addrs[NDIRECT], _INDIRECT.pack(*indirect))
        return indirect[fbn - NDIRECT]

    def append(self, inum: int, data: bytes) -> None:
        """Append ``data`` to the end of inode ``inum``."""
        data = bytes(data)
        inode = self.read_inode(inum)
        off = inode.size
        pos = 0
        while pos < len(data):
            fbn = off // BSIZE
            if fbn >= MAXFILE:
                raise ValueError(f"inode {inum} would exceed {MAXFILE} blocks")
            blockno = self._block_for(inode, fbn)
            n1 = min(len(data) - pos, (fbn + 1) * BSIZE - off)
            block = bytearray(self._read_block(blockno))
            start = off - fbn * BSIZE
            block[start : start + n1] = data[pos : pos + n1]
            self._write_block(blockno, block)
            pos += n1
            off += n1
        inode.size = off
        self.write_inode(inum, inode)

    def add_file(self, name: str, data: bytes) -> int:
        """Add a regular file to the root directory; a leading '_' is dropped."""
        if "/" in name:
            raise ValueError(f"file name {name!r} contains '/'")
        if name.startswith("_"):
            name = name[1:]
        inum = self.alloc_inode(FileType.FILE)
        self.append(self.root, DirEntry(inum, name).pack())
        self.append(inum, data)
        return inum

    def finish(self) -> None:
        """Round the root directory up to whole blocks and write the free bitmap."""
        root = self.read_inode(self.root)
        root.size = (root.size // BSIZE + 1) * BSIZE
        self.write_inode(self.root, root)

        used = self.free_block
        if used >= BPB:
            raise ValueError(f"{used} used blocks do not fit one bitmap block")
        bitmap = bytearray(BSIZE)
        for b in range(used):
            bitmap[b // 8] |= 1 << (b % 8)
        self._write_block(self.superblock.bmapstart, bitmap)

    def to_bytes(self) -> bytes:
        return bytes(self._image)


def build_image(
    files: Union[Mapping[str, bytes], Iterable[Tuple[str, bytes]]],
    size: int,
    nlog: int,
    ninodes: int = NINODES,
) -> bytes:
    """Build a finished image holding ``files``."""
    builder = ImageBuilder(size, nlog, ninodes)
    items = files.items() if isinstance(files, Mapping) else files
    for name, data in items:
        builder.add_file(name, data)
    builder.finish()
    return builder.to_bytes()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="mkfs", description="Build a file system image.")
    parser.add_argument("image", help="image file to write")
    parser.add_argument("files", nargs="*", help="files to place in the root directory")
    parser.add_argument("--size", type=int, required=True, help="image size in blocks")
    parser.add_argument("--nlog", type=int, required=True, help="number of log blocks")
    parser.add_argument("--ninodes", type=int, default=NINODES, help="number of inodes")
    args = parser.parse_args(argv)

    try:
        builder = ImageBuilder(args.size, args.nlog, args.ninodes)
        print(
            f"nmeta {builder.nmeta} (boot, super, log blocks {builder.nlog} "
            f"inode blocks {builder.ninodeblocks}, bitmap blocks {builder.nbitmap}) "
            f"blocks {builder.nblocks} total {builder.size}"
        )
        for path in args.files:
            if "/" in path:
                raise ValueError(f"file name {path!r} contains '/'")
            with open(path, "rb") as fh:
                builder.add_file(path, fh.read())
        builder.finish()
        print(f"balloc: first {builder.free_block} blocks have been allocated")
        print(f"balloc: write bitmap block at sector {builder.superblock.bmapstart}")
        with open(args.image, "wb") as fh:
            fh.write(builder.to_bytes())
    except (OSError, ValueError) as exc:
        print(f"mkfs: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())