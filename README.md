# uefikern

`uefikern` lets you build, inspect and experiment with the parts of a small
UEFI-booted teaching kernel. Everything runs as ordinary Python. No emulator,
no real hardware and no third-party libraries are needed.

## What is in it

- **Disk layout.** `uefikern.layout` holds the on-disk format: `SuperBlock`,
  `DiskInode` and `DirEntry`, each with `pack()` and `unpack()`, the
  `FileType` and `OpenFlag` enums, and `inode_block()` and `bitmap_block()`.
- **Image building.** `uefikern.mkfs` has `ImageBuilder` and `build_image()`,
  which lay out a boot block, super block, log, inode blocks, free bitmap and
  data blocks, with a root directory holding the files you give it.
- **File system stack.** `uefikern.bufcache` provides `MemoryDisk` and a
  most-recently-used `BufferCache`. `uefikern.log` adds a write-ahead `Log`
  with a `transaction()` context manager. `uefikern.fs` has `FileSystem`
  (inodes, reading and writing, directories, `namei` and `nameiparent`), and
  `uefikern.file` has a `FileTable` of reference-counted `OpenFile`s.
- **Program loading.** `uefikern.elf` parses 32-bit ELF images
  (`ElfImage.parse`, `ElfImage.loadable`, `load_bounds`) and copies their
  loadable segments into a memory buffer with `relocate()`, or sector by
  sector with `boot_load()`.
- **UEFI memory map.** `uefikern.memmap` unpacks `MemoryDescriptor`s with
  `parse_descriptors()` and prints them as a table with `format_memory_map()`.
- **Display and input.** `uefikern.font` holds a 15x30 bitmap font for
  printable ASCII (`glyph`, `font_render`, `font_render_string`).
  `uefikern.framebuffer` has `Framebuffer`, `GraphicConfig`, `choose_mode()`
  and `draw_bmp()`. `uefikern.console` has `cformat()`, a 53x20
  `GraphicConsole` and a line-editing `InputBuffer`. `uefikern.kbd` has a
  `KeyboardDecoder` for PC set-1 scan codes.
- **Networking helpers.** `uefikern.net` has byte-order helpers, the IPv4
  header checksum, an `ArpTable`, address formatting and the fixed
  `http_response()`.
- **Memory.** `uefikern.kalloc` has a `PageAllocator` handing out 4096-byte
  pages of a memory buffer.

## Installation

```
pip install uefikern
```

To run the test suite:

```
pip install "uefikern[test]"
pytest
```

## Command-line tools

Build a file-system image from files in the current directory. The image
size in blocks and the number of log blocks must be given; `--ninodes`
defaults to 200:

```
uefikern-mkfs fs.img README _cat _echo --size 1000 --nlog 30
```

A leading `_` is dropped from each file name when the file is stored in the
image. Names containing `/` are refused.

List a path inside an image (the root directory when no path is given):

```
uefikern-ls fs.img /
```

The small user programs also run on the host:

```
uefikern-echo hello world
uefikern-cat notes.txt
uefikern-grep '^a.*z$' words.txt
```

`uefikern-grep` supports only the `^`, `.`, `*` and `$` operators.

## Library use

Match a pattern with the simple matcher:

```python
from uefikern.userland import match

match("^ab*c$", "abbbc")   # True
match("x.z", "nope")       # False
```

Build an image in memory and read a file back through the file system:

```python
from uefikern.bufcache import BufferCache, MemoryDisk
from uefikern.fs import FileSystem
from uefikern.layout import BSIZE, SuperBlock
from uefikern.log import Log
from uefikern.mkfs import build_image

image = build_image({"hello": b"hi there\n"}, size=1000, nlog=30)
disk = MemoryDisk(image)
cache = BufferCache(disk)
sb = SuperBlock.unpack(image[BSIZE:2 * BSIZE])
fs = FileSystem(cache, Log(cache, disk.dev, sb, 30, 10), disk.dev)

with fs.log.transaction():
    ip = fs.lock(fs.namei("/hello"))
    print(fs.read(ip, 0, ip.size))
    fs.put(ip)
```

Keep track of neighbours with the ARP table:

```python
from uefikern.net import ArpTable, format_ipv4

table = ArpTable(64)
table.update(bytes([10, 0, 1, 2]), bytes([0x02, 0, 0, 0, 0, 0x01]))
print(table.format())
print(format_ipv4(bytes([10, 0, 1, 10])))   # IP address: 10.0.1.10
```

Read the loadable segments of an ELF image:

```python
from uefikern.elf import ElfImage, load_bounds

with open("kernel", "rb") as fh:
    image = ElfImage.parse(fh.read())

for segment in image.loadable():
    print(segment)
print(load_bounds(image))
```

Errors are raised as exceptions. Each subsystem has its own:

| Exception        | Raised by              |
|------------------|------------------------|
| `ElfError`       | `uefikern.elf`         |
| `CacheError`     | `uefikern.bufcache`    |
| `LogError`       | `uefikern.log`         |
| `FsError`        | `uefikern.fs`, `uefikern.file`, `uefikern.ls` |
| `ArpTableFull`   | `uefikern.net`         |
| `AllocatorError` | `uefikern.kalloc`      |

Malformed input such as truncated structures or out-of-range arguments
raises `ValueError`.

## What it does not do

- It does not boot or run a kernel. There is no scheduler, no processes and
  no system calls; the pieces are separate models you drive from Python.
- It does not parse ACPI tables (RSDP, XSDT, MADT) or build the boot
  parameter block and bootstrap GDT that a loader hands to the kernel.
- It does not send or receive network frames. `uefikern.net` only computes
  checksums, byte orders and the ARP table; there is no Ethernet, ARP, ICMP
  or TCP packet handling and no HTTP server.
- Disks, framebuffers and memory are byte arrays in the Python process;
  nothing talks to real devices.