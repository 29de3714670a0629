"""Network helpers: byte order, IPv4 checksum, a fixed HTTP reply and the ARP table."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

ARP_TABLE_MAX = 64
ARP_HARDWARE_TYPE = 0x0100
ARP_PROTOCOL_TYPE = 0x0008
ARP_OPS_REQUEST = 0x0100
ARP_OPS_REPLY = 0x0200

IPV4_TYPE_ICMP = 0x1
IPV4_TYPE_TCP = 0x6


def n2h_ushort(value: int) -> int:
    """Swap the two bytes of a 16-bit value."""
    value &= 0xFFFF
    return ((value & 0xFF) << 8) + (value >> 8)


def h2n_ushort(value: int) -> int:
    """Swap the two bytes of a 16-bit value."""
    value &= 0xFFFF
    return ((value & 0xFF) << 8) + (value >> 8)


def h2n_uint(value: int) -> int:
    value &= 0xFFFFFFFF
    return (
        ((value & 0xF) << 24)
        + ((value & 0xF0) << 8)
        + ((value & 0xF00) >> 8)
        + ((value & 0xF000) >> 24)
    ) & 0xFFFFFFFF


def n2h_uint(value: int) -> int:
    """Reverse the byte order of a 32-bit value."""
    value &= 0xFFFFFFFF
    return (
        ((value & 0xFF) << 24)
        + ((value & 0xFF00) << 8)
        + ((value & 0xFF0000) >> 8)
        + ((value & 0xFF000000) >> 24)
    ) & 0xFFFFFFFF


def ipv4_checksum(header) -> int:
    """Ones' complement checksum over the IPv4 header length given in its first byte."""
    header = bytes(header)
    if not header:
        raise ValueError("empty IPv4 header")
    length = (header[0] & 0xF) * 4
    if len(header) < length:
        raise ValueError(f"IPv4 header shorter than its stated {length} bytes")
    total = 0
    for hi, lo in zip(header[0:length:2], header[1:length:2]):
        total += (hi << 8) + lo
        if total > 0xFFFF:
            total = (total & 0xFFFF) + 1
    return ~total & 0xFFFF


def http_response() -> bytes:
    """The fixed reply sent to every HTTP request."""
    return (
        b"HTTP/1.0 200 OK \r\n"
        b"Content-Type: text/html \r\n"
        b"\r\nHello World!\r\n"
    )


def _check_length(value, size: int, what: str) -> bytes:
    value = bytes(value)
    if len(value) != size:
        raise ValueError(f"{what} must be {size} bytes, got {len(value)}")
    return value


def format_ipv4(ip) -> str:
    ip = _check_length(ip, 4, "IPv4 address")
    return "IP address: " + ".".join(str(b) for b in ip)


def format_mac(mac) -> str:
    mac = _check_length(mac, 6, "MAC address")
    return "MAC address: " + ":".join(f"{b:x}" for b in mac)


class ArpTableFull(Exception):
    """Raised when a new address does not fit the ARP table."""


@dataclass
class _ArpSlot:
    ip: bytes = bytes(4)
    mac: bytes = bytes(6)
    use: bool = False


@dataclass
class ArpTable:
    """Fixed-size table mapping IPv4 addresses to MAC addresses."""

    size: int = ARP_TABLE_MAX
    _slots: List[_ArpSlot] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.size < 1:
            raise ValueError("the ARP table needs at least one slot")
        self._slots = [_ArpSlot() for _ in range(self.size)]

    def search(self, ip) -> Optional[int]:
        """Index of the slot holding ``ip``, or None."""
        ip = _check_length(ip, 4, "IPv4 address")
        return next((i for i, slot in enumerate(self._slots) if slot.ip == ip), None)

    def update(self, ip, mac) -> int:
        """Record ``mac`` for ``ip``, taking the first unused slot if it is new."""
        ip = _check_length(ip, 4, "IPv4 address")
        mac = _check_length(mac, 6, "MAC address")
        index = self.search(ip)
        if index is None:
            index = next((i for i, slot in enumerate(self._slots) if not slot.use), None)
            if index is None:
                raise ArpTableFull(f"no free slot for {format_ipv4(ip)}")
            self._slots[index].ip = ip
            self._slots[index].use = True
        self._slots[index].mac = mac
        return index

    def entries(self) -> List[Tuple[int, bytes, bytes]]:
        """(index, ip, mac) for every slot in use."""
        return [(i, s.ip, s.mac) for i, s in enumerate(self._slots) if s.use]

    def format(self) -> str:
        return "".join(
            f"Entry Num: {i} {format_ipv4(ip)} {format_mac(mac)}\n"
            for i, ip, mac in self.entries()
        )