"""Parsing 32-bit ELF executables and loading their segments into memory."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import List, Tuple

ELF_MAGIC = 0x464C457F  # "\x7FELF" read little endian

PT_NULL = 0
PT_LOAD = 1
PT_DYNAMIC = 2

PROG_FLAG_EXEC = 1
PROG_FLAG_WRITE = 2
PROG_FLAG_READ = 4

PAGE_SIZE = 4096
SECTOR_SIZE = 512

_EHDR = struct.Struct("<I12sHHIIIIIHHHHHH")
_PHDR = struct.Struct("<8I")


class ElfError(Exception):
    """Raised for malformed images or images that cannot be loaded."""


@dataclass(frozen=True)
class ElfHeader:
    magic: int
    ident: bytes
    type: int
    machine: int
    version: int
    entry: int
    phoff: int
    shoff: int
    flags: int
    ehsize: int
    phentsize: int
    phnum: int
    shentsize: int
    shnum: int
    shstrndx: int

    @classmethod
    def unpack(cls, data) -> "ElfHeader":
        try:
            return cls(*_EHDR.unpack_from(data, 0))
        except struct.error as exc:
            raise ElfError("truncated ELF header") from exc


@dataclass(frozen=True)
class ProgramHeader:
    type: int
    offset: int
    vaddr: int
    paddr: int
    filesz: int
    memsz: int
    flags: int
    align: int

    @classmethod
    def unpack(cls, data, offset: int) -> "ProgramHeader":
        try:
            return cls(*_PHDR.unpack_from(data, offset))
        except struct.error as exc:
            raise ElfError(f"truncated program header at {offset:#x}") from exc


@dataclass(frozen=True)
class ElfImage:
    header: ElfHeader
    program_headers: Tuple[ProgramHeader, ...]
    data: bytes

    @classmethod
    def parse(cls, data) -> "ElfImage":
        data = bytes(data)
        header = ElfHeader.unpack(data)
        if header.magic != ELF_MAGIC:
            raise ElfError("not an ELF executable")
        headers = tuple(
            ProgramHeader.unpack(data, header.phoff + i * _PHDR.size)
            for i in range(header.phnum)
        )
        return cls(header, headers, data)

    def loadable(self) -> List[ProgramHeader]:
        return [ph for ph in self.program_headers if ph.type == PT_LOAD]


def _aligned_end(ph: ProgramHeader) -> int:
    end = ph.paddr + ph.memsz
    if ph.align > 1:
        mask = ph.align - 1
        end = (end + mask) & ~mask
    return end


def load_bounds(image: ElfImage) -> Tuple[int, int]:
    """Lowest physical start and highest aligned end over the loadable segments."""
    segments = image.loadable()
    if not segments:
        raise ElfError("no loadable segments")
    return min(ph.paddr for ph in segments), max(_aligned_end(ph) for ph in segments)


def _check_range(memory, start: int, stop: int) -> None:
    if start < 0 or stop > len(memory):
        raise ElfError(f"address range {start:#x}-{stop:#x} outside memory")


def relocate(data, memory: bytearray) -> int:
    """Copy the loadable segments to their physical addresses; return the entry."""
    image = ElfImage.parse(data)
    start, end = load_bounds(image)
    pages = (end - start) // PAGE_SIZE + 1
    if start + pages * PAGE_SIZE > len(memory):
        raise ElfError(f"could not allocate pages at {start:08x}")
    for ph in image.loadable():
        body = image.data[ph.offset : ph.offset + ph.filesz]
        if len(body) != ph.filesz:
            raise ElfError("segment extends past end of file")
        memory[ph.paddr : ph.paddr + ph.filesz] = body
        if ph.memsz > ph.filesz:
            memory[ph.paddr + ph.filesz : ph.paddr + ph.memsz] = bytes(ph.memsz - ph.filesz)
    return image.header.entry


def _read_segment(data: bytes, memory, pa: int, count: int, offset: int) -> None:
    # Whole sectors are copied, so more than asked may be written.
    end = pa + count
    pa -= offset % SECTOR_SIZE
    position = offset - offset % SECTOR_SIZE
    while pa < end:
        _check_range(memory, pa, pa + SECTOR_SIZE)
        memory[pa : pa + SECTOR_SIZE] = data[position : position + SECTOR_SIZE].ljust(
            SECTOR_SIZE, b"\0"
        )
        pa += SECTOR_SIZE
        position += SECTOR_SIZE


def boot_load(data, memory: bytearray) -> int:
    """Load every program segment sector by sector, as the boot block does."""
    data = bytes(data)
    first_page = data[:PAGE_SIZE]
    header = ElfHeader.unpack(first_page)
    if header.magic != ELF_MAGIC:
        raise ElfError("not an ELF executable")
    for i in range(header.phnum):
        ph = ProgramHeader.unpack(first_page, header.phoff + i * _PHDR.size)
        _read_segment(data, memory, ph.paddr, ph.filesz, ph.offset)
        if ph.memsz > ph.filesz:
            _check_range(memory, ph.paddr + ph.filesz, ph.paddr + ph.memsz)
            memory[ph.paddr + ph.filesz : ph.paddr + ph.memsz] = bytes(ph.memsz - ph.filesz)
    return header.entry