import struct

import pytest

from uefikern.bufcache import BufferCache, MemoryDisk
from uefikern.layout import BSIZE
from uefikern.log import Log, LogError
from uefikern.mkfs import ImageBuilder

LOGSIZE = 10
MAXOP = 3


def make_fs():
    builder = ImageBuilder(200, 10)
    disk = MemoryDisk(builder.to_bytes())
    cache = BufferCache(disk, nbuf=30)
    return builder.superblock, disk, cache


def block(disk, n):
    return bytes(disk.image[n * BSIZE : (n + 1) * BSIZE])


def header_count(disk, sb):
    return struct.unpack_from("<i", disk.image, sb.logstart * BSIZE)[0]


def test_commit_installs_block_and_clears_header():
    sb, disk, cache = make_fs()
    log = Log(cache, 1, sb, LOGSIZE, MAXOP)
    with log.transaction():
        buf = cache.read(1, 120)
        buf.data[:5] = b"hello"
        log.write(buf)
        cache.release(buf)
        assert block(disk, 120)[:5] == bytes(5)
    assert block(disk, 120)[:5] == b"hello"
    assert block(disk, sb.logstart + 1)[:5] == b"hello"
    assert header_count(disk, sb) == 0
    assert log.blocks == []
    assert log.outstanding == 0


def test_recovery_installs_committed_transaction():
    builder = ImageBuilder(200, 10)
    sb = builder.superblock
    image = bytearray(builder.to_bytes())
    struct.pack_into("<ii", image, sb.logstart * BSIZE, 1, 150)
    image[(sb.logstart + 1) * BSIZE : (sb.logstart + 2) * BSIZE] = b"X" * BSIZE
    disk = MemoryDisk(image)
    Log(BufferCache(disk, nbuf=30), 1, sb, LOGSIZE, MAXOP)
    assert block(disk, 150) == b"X" * BSIZE
    assert header_count(disk, sb) == 0


def test_write_outside_transaction_fails():
    sb, disk, cache = make_fs()
    log = Log(cache, 1, sb, LOGSIZE, MAXOP)
    buf = cache.read(1, 100)
    with pytest.raises(LogError):
        log.write(buf)
    cache.release(buf)


def test_repeated_writes_are_absorbed():
    sb, disk, cache = make_fs()
    log = Log(cache, 1, sb, LOGSIZE, MAXOP)
    log.begin_op()
    buf = cache.read(1, 120)
    log.write(buf)
    log.write(buf)
    cache.release(buf)
    assert log.blocks == [120]
    log.end_op()
    assert log.blocks == []


def test_transaction_limited_by_log_area():
    sb, disk, cache = make_fs()
    log = Log(cache, 1, sb, LOGSIZE, MAXOP)
    with pytest.raises(LogError):
        with log.transaction():
            for blockno in range(100, 100 + sb.nlog):
                buf = cache.read(1, blockno)
                buf.data[0] = 0x5A
                try:
                    log.write(buf)
                finally:
                    cache.release(buf)
    assert len([b for b in range(100, 100 + sb.nlog) if block(disk, b)[0] == 0x5A]) == sb.nlog - 1
    assert log.committing is False


def test_header_must_fit_one_block():
    sb, disk, cache = make_fs()
    with pytest.raises(LogError):
        Log(cache, 1, sb, BSIZE // 4, MAXOP)


def test_commit_waits_for_last_operation():
    sb, disk, cache = make_fs()
    log = Log(cache, 1, sb, LOGSIZE, MAXOP)
    log.begin_op()
    log.begin_op()
    buf = cache.read(1, 130)
    buf.data[:3] = b"abc"
    log.write(buf)
    cache.release(buf)
    log.end_op()
    assert block(disk, 130)[:3] == bytes(3)
    assert log.blocks == [130]
    log.end_op()
    assert block(disk, 130)[:3] == b"abc"