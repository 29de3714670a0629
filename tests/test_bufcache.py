import pytest

from uefikern.bufcache import Buffer, BufferCache, CacheError, MemoryDisk
from uefikern.layout import BSIZE


def make_image(nblocks=8):
    return b"".join(bytes([i]) * BSIZE for i in range(nblocks))


def test_read_returns_block_contents():
    cache = BufferCache(MemoryDisk(make_image()), nbuf=4)
    buf = cache.read(1, 3)
    assert bytes(buf.data) == bytes([3]) * BSIZE
    assert buf.valid and buf.locked
    cache.release(buf)
    assert not buf.locked


def test_write_reaches_disk_and_clears_dirty():
    disk = MemoryDisk(make_image())
    cache = BufferCache(disk, nbuf=4)
    buf = cache.read(1, 2)
    buf.data[:4] = b"abcd"
    cache.write(buf)
    cache.release(buf)
    assert disk.image[2 * BSIZE : 2 * BSIZE + 4] == b"abcd"
    assert buf.dirty is False


def test_cached_block_is_reused():
    cache = BufferCache(MemoryDisk(make_image()), nbuf=4)
    first = cache.read(1, 5)
    cache.release(first)
    second = cache.read(1, 5)
    assert second is first
    assert second.refcnt == 1
    cache.release(second)
    assert second.refcnt == 0


def test_least_recently_used_buffer_is_recycled():
    cache = BufferCache(MemoryDisk(make_image()), nbuf=2)
    b0 = cache.read(1, 0)
    cache.release(b0)
    b1 = cache.read(1, 1)
    cache.release(b1)
    b2 = cache.read(1, 2)
    assert b2 is b0
    assert bytes(b2.data) == bytes([2]) * BSIZE
    cache.release(b2)
    again = cache.read(1, 1)
    assert again is b1
    cache.release(again)


def test_no_free_buffer_raises():
    cache = BufferCache(MemoryDisk(make_image()), nbuf=1)
    held = cache.read(1, 0)
    with pytest.raises(CacheError):
        cache.read(1, 1)
    cache.release(held)


def test_dirty_buffer_is_not_recycled():
    cache = BufferCache(MemoryDisk(make_image()), nbuf=1)
    buf = cache.read(1, 0)
    buf.dirty = True
    cache.release(buf)
    with pytest.raises(CacheError):
        cache.read(1, 1)


def test_write_and_release_need_held_buffer():
    cache = BufferCache(MemoryDisk(make_image()), nbuf=2)
    buf = cache.read(1, 0)
    cache.release(buf)
    with pytest.raises(CacheError):
        cache.write(buf)
    with pytest.raises(CacheError):
        cache.release(buf)


def test_disk_rejects_other_device_and_out_of_range():
    disk = MemoryDisk(make_image(4))
    assert disk.block_count() == 4
    cache = BufferCache(disk, nbuf=2)
    with pytest.raises(CacheError):
        cache.read(2, 0)
    with pytest.raises(CacheError):
        cache.read(1, 4)


def test_sync_requires_lock_and_work():
    disk = MemoryDisk(make_image(2))
    buf = Buffer(dev=1, blockno=0)
    with pytest.raises(CacheError):
        disk.sync(buf)
    buf.lock.acquire()
    disk.sync(buf)
    assert buf.valid
    with pytest.raises(CacheError):
        disk.sync(buf)
    buf.lock.release()


def test_image_size_must_be_whole_blocks():
    with pytest.raises(ValueError):
        MemoryDisk(b"\0" * (BSIZE + 1))