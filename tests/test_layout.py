import pytest

from uefikern.layout import (
    BPB,
    BSIZE,
    DIRSIZ,
    IPB,
    NDIRECT,
    DirEntry,
    DiskInode,
    SuperBlock,
    bitmap_block,
    inode_block,
)


def make_sb():
    return SuperBlock(
        size=1000, nblocks=941, ninodes=200, nlog=30, logstart=2, inodestart=32, bmapstart=58
    )


def test_superblock_round_trip():
    sb = make_sb()
    assert SuperBlock.unpack(sb.pack()) == sb


def test_superblock_unpack_ignores_trailing_bytes():
    sb = make_sb()
    assert SuperBlock.unpack(sb.pack() + bytes(BSIZE)) == sb


def test_superblock_truncated():
    with pytest.raises(ValueError):
        SuperBlock.unpack(b"\x01\x02")


def test_disk_inode_round_trip():
    addrs = list(range(100, 100 + NDIRECT + 1))
    inode = DiskInode(type=2, major=-1, minor=3, nlink=1, size=4097, addrs=addrs)
    assert DiskInode.unpack(inode.pack()) == inode


def test_disk_inodes_fill_a_block():
    assert len(DiskInode().pack()) * IPB == BSIZE


def test_disk_inode_rejects_wrong_address_count():
    with pytest.raises(ValueError):
        DiskInode(addrs=[1, 2]).pack()


def test_dirent_bytes():
    assert DirEntry(1, ".").pack() == b"\x01\x00." + bytes(DIRSIZ - 1)


def test_dirent_round_trip():
    entry = DirEntry(7, "README")
    assert DirEntry.unpack(entry.pack()) == entry


def test_dirent_name_truncated():
    entry = DirEntry(3, "a" * 20)
    assert DirEntry.unpack(entry.pack()).name == "a" * DIRSIZ


def test_inode_block():
    sb = make_sb()
    assert inode_block(0, sb) == sb.inodestart
    assert inode_block(IPB - 1, sb) == sb.inodestart
    assert inode_block(IPB, sb) == sb.inodestart + 1


def test_bitmap_block():
    sb = make_sb()
    assert bitmap_block(5, sb) == sb.bmapstart
    assert bitmap_block(BPB * 2 + 5, sb) == sb.bmapstart + 2