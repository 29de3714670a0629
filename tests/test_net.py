import pytest

from uefikern.net import (
    ARP_PROTOCOL_TYPE,
    ArpTable,
    ArpTableFull,
    format_ipv4,
    format_mac,
    h2n_uint,
    h2n_ushort,
    http_response,
    ipv4_checksum,
    n2h_uint,
    n2h_ushort,
)

IP_A = bytes([10, 0, 1, 10])
IP_B = bytes([10, 0, 1, 20])
MAC_A = bytes([0x02, 0, 0, 0, 0, 0x0A])
MAC_B = bytes([0x02, 0, 0, 0, 0, 0x0B])


def test_ushort_swap_matches_wire_constant():
    assert n2h_ushort(0x0800) == ARP_PROTOCOL_TYPE
    assert h2n_ushort(ARP_PROTOCOL_TYPE) == 0x0800


@pytest.mark.parametrize("value", [0, 1, 0x1234, 0xFFFF, 0x8001])
def test_ushort_round_trip(value):
    assert n2h_ushort(h2n_ushort(value)) == value


@pytest.mark.parametrize("value", [0, 1, 0x0A00010A, 0xFFFFFFFF, 0xDEADBEEF])
def test_uint_swap_is_involution(value):
    assert n2h_uint(n2h_uint(value)) == value


def test_uint_swap_reverses_bytes():
    assert n2h_uint(0x12345678) == 0x78563412


def test_h2n_uint_agrees_with_n2h_uint_on_low_nibble():
    assert h2n_uint(0x5) == n2h_uint(0x5)


def test_ipv4_checksum_worked_example():
    header = bytes.fromhex("450000730000400040110000c0a80001c0a800c7")
    assert ipv4_checksum(header) == 0xB861


def test_ipv4_checksum_of_checksummed_header_is_zero():
    header = bytearray.fromhex("4500003c1c4640004006000 0ac100a63ac100a0c".replace(" ", ""))
    checksum = ipv4_checksum(header)
    header[10] = checksum >> 8
    header[11] = checksum & 0xFF
    assert ipv4_checksum(header) == 0


def test_ipv4_checksum_rejects_short_header():
    with pytest.raises(ValueError):
        ipv4_checksum(bytes([0x45, 0, 0, 20]))


def test_http_response_text():
    assert http_response() == (
        b"HTTP/1.0 200 OK \r\nContent-Type: text/html \r\n\r\nHello World!\r\n"
    )


def test_format_addresses():
    assert format_ipv4(IP_A) == "IP address: 10.0.1.10"
    assert format_mac(MAC_A) == "MAC address: 2:0:0:0:0:a"
    with pytest.raises(ValueError):
        format_mac(b"\x01\x02")


def test_arp_update_and_search():
    table = ArpTable()
    assert table.search(IP_A) is None
    assert table.update(IP_A, MAC_A) == 0
    assert table.update(IP_B, MAC_B) == 1
    assert table.search(IP_A) == 0
    assert table.search(IP_B) == 1
    assert table.entries() == [(0, IP_A, MAC_A), (1, IP_B, MAC_B)]


def test_arp_update_existing_replaces_mac():
    table = ArpTable()
    table.update(IP_A, MAC_A)
    assert table.update(IP_A, MAC_B) == 0
    assert table.entries() == [(0, IP_A, MAC_B)]


def test_arp_table_full():
    table = ArpTable(size=2)
    table.update(IP_A, MAC_A)
    table.update(IP_B, MAC_B)
    with pytest.raises(ArpTableFull):
        table.update(bytes([10, 0, 1, 30]), MAC_A)


def test_arp_format_lists_used_entries():
    table = ArpTable()
    assert table.format() == ""
    table.update(IP_A, MAC_A)
    assert table.format() == f"Entry Num: 0 {format_ipv4(IP_A)} {format_mac(MAC_A)}\n"