import pytest

from uefikern.console import (
    BACKSPACE,
    HORIZONTAL_MAX,
    INPUT_BUF,
    VERTICAL_MAX,
    GraphicConsole,
    InputBuffer,
    cformat,
    control,
)
from uefikern.font import FONT_HEIGHT, FONT_WIDTH


class Canvas:
    def __init__(self):
        self.pixels = {}
        self.scrolls = []

    def draw_pixel(self, x, y, pixel):
        self.pixels[(x, y)] = bytes(pixel)

    def scroll_up(self, height):
        self.scrolls.append(height)


def test_cformat_basic():
    assert cformat("%d and %s", -5, "x") == "-5 and x"
    assert cformat("%x", 255) == "ff"
    assert cformat("%p", 255) == "ff"
    assert cformat("%c%c", 72, "i") == "Hi"


def test_cformat_hex_is_unsigned():
    assert cformat("%x", -1) == "ffffffff"


def test_cformat_null_string_and_percent():
    assert cformat("%s", None) == "(null)"
    assert cformat("100%%") == "100%"


def test_cformat_unknown_and_trailing():
    assert cformat("%q") == "%q"
    assert cformat("abc%") == "abc"


def test_cformat_missing_argument():
    with pytest.raises(ValueError):
        cformat("%d")


def test_control():
    assert control("D") == 4
    assert control("P") == 16


def test_first_char_scrolls_and_draws_on_last_row():
    canvas = Canvas()
    console = GraphicConsole(canvas)
    console.putc("A")
    assert canvas.scrolls == [30]
    assert console.pos == (VERTICAL_MAX - 1) * HORIZONTAL_MAX + 1
    xs = {x for x, _ in canvas.pixels}
    ys = {y for _, y in canvas.pixels}
    assert min(xs) == 2
    assert len(xs) == FONT_WIDTH
    assert min(ys) == (VERTICAL_MAX - 1) * FONT_HEIGHT
    assert len(ys) == FONT_HEIGHT


def test_newline_and_backspace_move_position():
    canvas = Canvas()
    console = GraphicConsole(canvas)
    console.write("ab")
    start = console.pos
    console.putc(BACKSPACE)
    assert console.pos == start - 1
    console.putc("\n")
    assert console.pos % HORIZONTAL_MAX == 0
    assert console.pos < VERTICAL_MAX * HORIZONTAL_MAX
    assert len(canvas.scrolls) == 2


def test_read_line_with_carriage_return():
    echoed = []
    buf = InputBuffer(echoed.append)
    assert buf.interrupt("hi\r") is False
    assert buf.read(10) == b"hi\n"
    assert echoed == [ord("h"), ord("i"), ord("\n")]


def test_backspace_edits_line():
    echoed = []
    buf = InputBuffer(echoed.append)
    buf.interrupt("ab\x7fc\n")
    assert buf.read(10) == b"ac\n"
    assert BACKSPACE in echoed


def test_kill_line():
    buf = InputBuffer()
    buf.interrupt("abc" + chr(control("U")) + "x\n")
    assert buf.read(10) == b"x\n"


def test_control_d_ends_input():
    buf = InputBuffer()
    buf.interrupt(["a", "b", control("D")])
    assert buf.read(10) == b"ab"
    assert buf.read(10) == b""


def test_procdump_request():
    buf = InputBuffer()
    assert buf.interrupt([control("P")]) is True


def test_full_buffer_drops_extra():
    buf = InputBuffer()
    buf.interrupt("a" * (INPUT_BUF + 5))
    assert buf.read(INPUT_BUF) == b"a" * INPUT_BUF