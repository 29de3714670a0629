import struct

import pytest

from uefikern.layout import (
    BSIZE,
    DIRENT_SIZE,
    MAXFILE,
    NDIRECT,
    NINDIRECT,
    ROOTINO,
    DirEntry,
    FileType,
    SuperBlock,
)
from uefikern.mkfs import ImageBuilder, build_image, main


def block(image, n):
    return image[n * BSIZE:(n + 1) * BSIZE]


def read_file(builder, inum):
    image = builder.to_bytes()
    inode = builder.read_inode(inum)
    addrs = list(inode.addrs[:NDIRECT])
    if inode.addrs[NDIRECT]:
        addrs += struct.unpack(f"<{NINDIRECT}I", block(image, inode.addrs[NDIRECT]))
    content = b"".join(block(image, a) for a in addrs if a)
    return content[:inode.size]


def root_names(builder):
    data = read_file(builder, ROOTINO)
    entries = [DirEntry.unpack(data[i:i + DIRENT_SIZE]) for i in range(0, len(data), DIRENT_SIZE)]
    return [e.name for e in entries if e.inum]


def test_superblock_written():
    builder = ImageBuilder(200, 10)
    sb = SuperBlock.unpack(block(builder.to_bytes(), 1))
    assert sb == builder.superblock
    assert sb.size == 200
    assert sb.logstart == 2
    assert sb.inodestart == 2 + 10
    assert sb.nblocks == 200 - builder.nmeta


def test_root_directory():
    builder = ImageBuilder(200, 10)
    assert builder.root == ROOTINO
    assert builder.read_inode(ROOTINO).type == FileType.DIR
    assert root_names(builder) == [".", ".."]


def test_add_file_strips_underscore():
    builder = ImageBuilder(200, 10)
    inum = builder.add_file("_cat", b"hello")
    assert root_names(builder) == [".", "..", "cat"]
    assert read_file(builder, inum) == b"hello"
    assert builder.read_inode(inum).type == FileType.FILE
    assert builder.read_inode(inum).nlink == 1


def test_large_file_uses_indirect_block():
    data = bytes(range(256)) * ((NDIRECT + 3) * 2) + b"tail"
    builder = ImageBuilder(200, 10)
    inum = builder.add_file("big", data)
    assert builder.read_inode(inum).addrs[NDIRECT] != 0
    assert read_file(builder, inum) == data


def test_file_too_large():
    builder = ImageBuilder(400, 10)
    with pytest.raises(ValueError):
        builder.add_file("huge", bytes(MAXFILE * BSIZE + 1))


def test_slash_in_name_rejected():
    builder = ImageBuilder(200, 10)
    with pytest.raises(ValueError):
        builder.add_file("a/b", b"")


def test_too_small_image():
    with pytest.raises(ValueError):
        ImageBuilder(10, 10)


def test_finish_rounds_root_and_writes_bitmap():
    builder = ImageBuilder(200, 10)
    builder.add_file("x", b"data")
    builder.finish()
    assert builder.read_inode(ROOTINO).size % BSIZE == 0
    bitmap = block(builder.to_bytes(), builder.superblock.bmapstart)
    used = builder.free_block
    assert all(bitmap[b // 8] & (1 << (b % 8)) for b in range(used))
    assert not bitmap[used // 8] & (1 << (used % 8))


def test_build_image_matches_builder():
    builder = ImageBuilder(200, 10)
    builder.add_file("a", b"one")
    builder.finish()
    assert build_image({"a": b"one"}, 200, 10) == builder.to_bytes()


def test_main_writes_image(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "_hello").write_bytes(b"hi there")
    assert main(["fs.img", "--size", "200", "--nlog", "10", "_hello"]) == 0
    image = (tmp_path / "fs.img").read_bytes()
    assert len(image) == 200 * BSIZE
    assert SuperBlock.unpack(block(image, 1)).size == 200


def test_main_missing_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main(["fs.img", "--size", "200", "--nlog", "10", "missing"]) == 1