"""Listing files and directories of a file system image."""

from __future__ import annotations

import sys
from typing import List, Optional

from .bufcache import BufferCache, MemoryDisk
from .fs import FileSystem, FsError
from .layout import BSIZE, DIRENT_SIZE, DIRSIZ, DirEntry, FileType, SuperBlock
from .log import Log


def fmtname(path: str) -> str:
    """Last path element, blank-padded to DIRSIZ characters."""
    name = path.rsplit("/", 1)[-1]
    return name if len(name) >= DIRSIZ else name.ljust(DIRSIZ)


def _line(path: str, st) -> str:
    return f"{fmtname(path)} {int(st.type)} {st.ino} {st.size}"


def ls(fs: FileSystem, path: str) -> List[str]:
    """Lines describing ``path``, or each entry if it is a directory."""
    lines: List[str] = []
    with fs.log.transaction():
        ip = fs.namei(path)
        if ip is None:
            raise FsError(f"ls: cannot open {path}")
        try:
            st = fs.stat(fs.lock(ip))
            if st.type == FileType.FILE:
                lines.append(_line(path, st))
            elif st.type == FileType.DIR:
                if len(path) + 1 + DIRSIZ + 1 > 512:
                    return ["ls: path too long"]
                for off in range(0, ip.size, DIRENT_SIZE):
                    raw = fs.read(ip, off, DIRENT_SIZE)
                    if len(raw) != DIRENT_SIZE:
                        break
                    entry = DirEntry.unpack(raw)
                    if not entry.inum:
                        continue
                    full = f"{path}/{entry.name}"
                    child = fs.namei(full)
                    if child is None:
                        lines.append(f"ls: cannot stat {full}")
                        continue
                    lines.append(_line(full, fs.stat(fs.lock(child))))
                    fs.put(child)
        finally:
            fs.put(ip)
    return lines


def _open_image(path: str) -> FileSystem:
    with open(path, "rb") as fh:
        image = fh.read()
    disk = MemoryDisk(image)
    cache = BufferCache(disk)
    sb = SuperBlock.unpack(image[BSIZE : 2 * BSIZE])
    log = Log(cache, disk.dev, sb, sb.nlog, min(10, sb.nlog))
    return FileSystem(cache, log, disk.dev)


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("usage: ls image [path ...]", file=sys.stderr)
        return 1
    try:
        fs = _open_image(args[0])
    except (OSError, ValueError, FsError) as exc:
        print(f"ls: {exc}", file=sys.stderr)
        return 1
    status = 0
    for path in args[1:] or ["/"]:
        try:
            for line in ls(fs, path):
                print(line)
        except FsError as exc:
            print(exc, file=sys.stderr)
            status = 1
    return status


if __name__ == "__main__":
    sys.exit(main())