"""Console formatting, a text console drawn with the bitmap font, and line input."""

from __future__ import annotations

import threading
from typing import Callable, Iterable, List, Optional, Union

from .font import FONT_HEIGHT, FONT_WIDTH, font_render

BACKSPACE = 0x100
HORIZONTAL_MAX = 53
VERTICAL_MAX = 20
INPUT_BUF = 128
SCROLL_LINES = 30
LEFT_MARGIN = 2

Char = Union[str, int]


def _code(c: Char) -> int:
    if isinstance(c, str):
        if len(c) != 1:
            raise ValueError(f"expected a single character, got {c!r}")
        return ord(c)
    return int(c)


def control(c: Char) -> int:
    """Code of Control-``c``."""
    return _code(c) - ord("@")


def cformat(fmt: str, *args) -> str:
    """Format with %d, %x, %p, %s, %c and %%; an unknown sequence is printed as is."""
    out: List[str] = []
    values = iter(args)

    def arg():
        try:
            return next(values)
        except StopIteration:
            raise ValueError(f"not enough arguments for {fmt!r}") from None

    chars = iter(fmt)
    for ch in chars:
        if ch != "%":
            out.append(ch)
            continue
        spec = next(chars, None)
        if spec is None:
            break
        if spec == "c":
            value = arg()
            out.append(value if isinstance(value, str) else chr(value))
        elif spec == "d":
            value = int(arg()) & 0xFFFFFFFF
            if value >= 1 << 31:
                value -= 1 << 32
            out.append(str(value))
        elif spec in "xp":
            out.append(format(int(arg()) & 0xFFFFFFFF, "x"))
        elif spec == "s":
            value = arg()
            out.append("(null)" if value is None else str(value))
        elif spec == "%":
            out.append("%")
        else:
            out.append("%" + spec)
    return "".join(out)


class GraphicConsole:
    """A 53x20 character console on a canvas with draw_pixel and scroll_up."""

    def __init__(self, canvas):
        self.canvas = canvas
        self.pos = HORIZONTAL_MAX * VERTICAL_MAX

    def _scroll_if_full(self) -> None:
        if self.pos >= VERTICAL_MAX * HORIZONTAL_MAX:
            self.pos -= HORIZONTAL_MAX
            self.canvas.scroll_up(SCROLL_LINES)

    def putc(self, c: Char) -> None:
        code = _code(c)
        if code == ord("\n"):
            self.pos += HORIZONTAL_MAX - self.pos % HORIZONTAL_MAX
            self._scroll_if_full()
        elif code == BACKSPACE:
            if self.pos > 0:
                self.pos -= 1
        else:
            self._scroll_if_full()
            x = (self.pos % HORIZONTAL_MAX) * FONT_WIDTH + LEFT_MARGIN
            y = (self.pos // HORIZONTAL_MAX) * FONT_HEIGHT
            font_render(self.canvas, x, y, code)
            self.pos += 1

    def write(self, text: str) -> None:
        for ch in text:
            self.putc(ch)


class InputBuffer:
    """Circular line-editing buffer filled by keyboard input and read by line."""

    def __init__(self, echo: Optional[Callable[[int], None]] = None):
        self.echo = echo or (lambda c: None)
        self._buf = [0] * INPUT_BUF
        self.r = 0
        self.w = 0
        self.e = 0
        self._cond = threading.Condition()

    def interrupt(self, chars: Iterable[Char]) -> bool:
        """Process typed characters; return True if a process listing was asked for."""
        procdump = False
        with self._cond:
            for item in chars:
                c = _code(item)
                if c == control("P"):
                    procdump = True
                elif c == control("U"):
                    while (
                        self.e != self.w
                        and self._buf[(self.e - 1) % INPUT_BUF] != ord("\n")
                    ):
                        self.e -= 1
                        self.echo(BACKSPACE)
                elif c in (control("H"), 0x7F):
                    if self.e != self.w:
                        self.e -= 1
                        self.echo(BACKSPACE)
                elif c != 0 and self.e - self.r < INPUT_BUF:
                    if c == ord("\r"):
                        c = ord("\n")
                    self._buf[self.e % INPUT_BUF] = c
                    self.e += 1
                    self.echo(c)
                    if (
                        c == ord("\n")
                        or c == control("D")
                        or self.e == self.r + INPUT_BUF
                    ):
                        self.w = self.e
                        self._cond.notify_all()
        return procdump

    def read(self, n: int) -> bytes:
        """Read up to ``n`` bytes, stopping after a newline; Control-D ends input."""
        target = n
        out = bytearray()
        with self._cond:
            while n > 0:
                while self.r == self.w:
                    self._cond.wait()
                c = self._buf[self.r % INPUT_BUF]
                self.r += 1
                if c == control("D"):
                    if n < target:
                        # Keep ^D so the next read returns nothing.
                        self.r -= 1
                    break
                out.append(c & 0xFF)
                n -= 1
                if c == ord("\n"):
                    break
        return bytes(out)