"""Decoding PC keyboard set-1 scan codes into characters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

NO = 0

SHIFT = 1 << 0
CTL = 1 << 1
ALT = 1 << 2
CAPSLOCK = 1 << 3
NUMLOCK = 1 << 4
SCROLLLOCK = 1 << 5
E0ESC = 1 << 6

KEY_HOME = 0xE0
KEY_END = 0xE1
KEY_UP = 0xE2
KEY_DN = 0xE3
KEY_LF = 0xE4
KEY_RT = 0xE5
KEY_PGUP = 0xE6
KEY_PGDN = 0xE7
KEY_INS = 0xE8
KEY_DEL = 0xE9


def _c(ch: str) -> int:
    return (ord(ch) - ord("@")) & 0xFF


def _table(base, extra) -> tuple:
    table = [NO] * 256
    table[: len(base)] = list(base)
    for index, value in extra.items():
        table[index] = value
    return tuple(table)


_SPECIAL = {
    0xC8: KEY_UP, 0xD0: KEY_DN,
    0xC9: KEY_PGUP, 0xD1: KEY_PGDN,
    0xCB: KEY_LF, 0xCD: KEY_RT,
    0x97: KEY_HOME, 0xCF: KEY_END,
    0xD2: KEY_INS, 0xD3: KEY_DEL,
}

_KEYPAD = (
    b"\x00 \x00\x00\x00\x00\x00\x00"
    b"\x00\x00\x00\x00\x00\x00\x007"
    b"89-456+1"
    b"230.\x00\x00\x00\x00"
)

_NORMAL = _table(
    b"\x00\x1b123456"
    b"7890-=\b\t"
    b"qwertyui"
    b"op[]\n\x00as"
    b"dfghjkl;"
    b"'`\x00\\zxcv"
    b"bnm,./\x00*" + _KEYPAD,
    {0x9C: ord("\n"), 0xB5: ord("/"), **_SPECIAL},
)

_SHIFTED = _table(
    b"\x00\x1b!@#$%^"
    b"&*()_+\b\t"
    b"QWERTYUI"
    b"OP{}\n\x00AS"
    b"DFGHJKL:"
    b"\"~\x00|ZXCV"
    b"BNM<>?\x00*" + _KEYPAD,
    {0x9C: ord("\n"), 0xB5: ord("/"), **_SPECIAL},
)

_CONTROL = _table(
    [NO] * 16
    + [_c(ch) for ch in "QWERTYUI"]
    + [_c("O"), _c("P"), NO, NO, ord("\r"), NO, _c("A"), _c("S")]
    + [_c(ch) for ch in "DFGHJKL"] + [NO]
    + [NO, NO, NO, _c("\\"), _c("Z"), _c("X"), _c("C"), _c("V")]
    + [_c("B"), _c("N"), _c("M"), NO, NO, _c("/"), NO, NO],
    {0x9C: ord("\r"), 0xB5: _c("/"), **_SPECIAL},
)

_SHIFTCODE = _table(
    [], {0x1D: CTL, 0x2A: SHIFT, 0x36: SHIFT, 0x38: ALT, 0x9D: CTL, 0xB8: ALT}
)
_TOGGLECODE = _table([], {0x3A: CAPSLOCK, 0x45: NUMLOCK, 0x46: SCROLLLOCK})

_CHARCODE = (_NORMAL, _SHIFTED, _CONTROL, _CONTROL)


@dataclass
class KeyboardDecoder:
    """Tracks modifier and lock state across scan codes."""

    shift: int = 0

    def feed(self, data: int) -> int:
        """Decode one byte from the data port; 0 when it yields no character."""
        if not 0 <= data <= 0xFF:
            raise ValueError(f"scan code {data} is not a byte")
        if data == 0xE0:
            self.shift |= E0ESC
            return 0
        if data & 0x80:
            # Key released.
            data = data if self.shift & E0ESC else data & 0x7F
            self.shift &= ~(_SHIFTCODE[data] | E0ESC)
            return 0
        if self.shift & E0ESC:
            data |= 0x80
            self.shift &= ~E0ESC

        self.shift |= _SHIFTCODE[data]
        self.shift ^= _TOGGLECODE[data]
        c = _CHARCODE[self.shift & (CTL | SHIFT)][data]
        if self.shift & CAPSLOCK:
            if ord("a") <= c <= ord("z"):
                c += ord("A") - ord("a")
            elif ord("A") <= c <= ord("Z"):
                c += ord("a") - ord("A")
        return c

    def decode(self, scancodes: Iterable[int]) -> List[int]:
        """Characters produced by a sequence of scan codes."""
        return [c for c in map(self.feed, scancodes) if c]