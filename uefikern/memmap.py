"""UEFI memory map descriptors and the table the loader writes out."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import Iterable, List

EFI_MEMORY_RUNTIME = 0x8000000000000000

_DESCRIPTOR = struct.Struct("<I4xQQQQ")

HEADER = (
    "| Index | Type     | PhysicalStart | VirtualStart  | NumberOfPages | Attribute |\n"
    "|-------|----------|---------------|---------------|---------------|-----------|\n"
)


class MemoryType(enum.IntEnum):
    RESERVED = 0
    LOADER_CODE = 1
    LOADER_DATA = 2
    BOOT_SERVICES_CODE = 3
    BOOT_SERVICES_DATA = 4
    RUNTIME_SERVICES_CODE = 5
    RUNTIME_SERVICES_DATA = 6
    CONVENTIONAL = 7
    UNUSABLE = 8
    ACPI_RECLAIM = 9
    ACPI_MEMORY_NVS = 10
    MEMORY_MAPPED_IO = 11
    MEMORY_MAPPED_IO_PORT_SPACE = 12
    PAL_CODE = 13
    PERSISTENT = 14
    MAX = 15


_NAMES = {
    MemoryType.RESERVED: "EfiReservedMemoryType",
    MemoryType.LOADER_CODE: "EfiLoaderCode",
    MemoryType.LOADER_DATA: "EfiLoaderData",
    MemoryType.BOOT_SERVICES_CODE: "EfiBootServicesCode",
    MemoryType.BOOT_SERVICES_DATA: "EfiBootServicesData",
    MemoryType.RUNTIME_SERVICES_CODE: "EfiRuntimeServicesCode",
    MemoryType.RUNTIME_SERVICES_DATA: "EfiRuntimeServicesData",
    MemoryType.CONVENTIONAL: "EfiConventionalMemory",
    MemoryType.UNUSABLE: "EfiUnusableMemory",
    MemoryType.ACPI_RECLAIM: "EfiACPIReclaimMemory",
    MemoryType.ACPI_MEMORY_NVS: "EfiACPIMemoryNVS",
    MemoryType.MEMORY_MAPPED_IO: "EfiMemoryMappedIO",
    MemoryType.MEMORY_MAPPED_IO_PORT_SPACE: "EfiMemoryMappedIOPortSpace",
    MemoryType.PAL_CODE: "EfiPalCode",
    MemoryType.PERSISTENT: "EfiPersistentMemory",
    MemoryType.MAX: "EfiMaxMemoryType",
}


def memory_type_name(type: int) -> str:
    """Firmware name of a memory type, or "InvalidMemoryType"."""
    return _NAMES.get(type, "InvalidMemoryType")


@dataclass(frozen=True)
class MemoryDescriptor:
    """One region of the UEFI memory map."""

    type: int
    physical_start: int
    virtual_start: int
    number_of_pages: int
    attribute: int

    SIZE = _DESCRIPTOR.size

    @classmethod
    def unpack(cls, data, offset: int = 0) -> "MemoryDescriptor":
        try:
            return cls(*_DESCRIPTOR.unpack_from(bytes(data), offset))
        except struct.error:
            raise ValueError(f"memory descriptor truncated at offset {offset}") from None


def parse_descriptors(buffer, map_size: int, descriptor_size: int) -> List[MemoryDescriptor]:
    """Descriptors in the first ``map_size`` bytes, ``descriptor_size`` bytes apart."""
    buffer = bytes(buffer)
    if descriptor_size < MemoryDescriptor.SIZE:
        raise ValueError(f"descriptor size {descriptor_size} below {MemoryDescriptor.SIZE}")
    if not 0 <= map_size <= len(buffer):
        raise ValueError(f"map size {map_size} outside buffer of {len(buffer)} bytes")
    return [
        MemoryDescriptor.unpack(buffer, offset)
        for offset in range(0, map_size, descriptor_size)
    ]


def format_memory_map(descriptors: Iterable[MemoryDescriptor]) -> str:
    """The memory map as a text table, one line per descriptor."""
    lines = [HEADER]
    for index, desc in enumerate(descriptors):
        runtime = "RT" if desc.attribute & EFI_MEMORY_RUNTIME else ""
        lines.append(
            f"| {index:2d} | {int(desc.type):x} {memory_type_name(desc.type):<26} "
            f"| {desc.physical_start:08x} | {desc.virtual_start:08x} "
            f"| {desc.number_of_pages:4x} | {runtime:>2} {desc.attribute & 0xFFFFF:5x} |\n"
        )
    return "".join(lines)