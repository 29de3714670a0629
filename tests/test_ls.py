import pytest

from uefikern.bufcache import BufferCache, MemoryDisk
from uefikern.fs import FileSystem, FsError
from uefikern.layout import BSIZE, DIRSIZ, FileType, SuperBlock
from uefikern.log import Log
from uefikern.ls import fmtname, ls, main
from uefikern.mkfs import build_image

FILES = {"hello": b"hello world\n", "readme": b"abc"}


@pytest.fixture
def image():
    return build_image(FILES, size=1000, nlog=30)


@pytest.fixture
def fs(image):
    cache = BufferCache(MemoryDisk(image))
    sb = SuperBlock.unpack(image[BSIZE : 2 * BSIZE])
    return FileSystem(cache, Log(cache, 1, sb, 30, 10), 1)


def test_fmtname_pads_last_element():
    assert fmtname("/a/hello") == "hello".ljust(DIRSIZ)
    assert len(fmtname("x")) == DIRSIZ
    long_name = "a" * 20
    assert fmtname("/d/" + long_name) == long_name


def test_ls_file(fs):
    lines = ls(fs, "/hello")
    assert len(lines) == 1
    name, type_, ino, size = lines[0].split()
    assert name == "hello"
    assert int(type_) == FileType.FILE
    assert int(size) == len(FILES["hello"])


def test_ls_root(fs):
    lines = ls(fs, "/")
    names = [line.split()[0] for line in lines]
    assert names == [".", "..", "hello", "readme"]
    assert int(lines[0].split()[1]) == FileType.DIR


def test_ls_missing(fs):
    with pytest.raises(FsError):
        ls(fs, "/nope")


def test_main(tmp_path, image, capsys):
    path = tmp_path / "fs.img"
    path.write_bytes(image)
    assert main([str(path), "/readme"]) == 0
    out = capsys.readouterr().out
    assert out.split()[0] == "readme"
    assert main([str(path), "/nope"]) == 1