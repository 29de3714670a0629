import pytest

from uefikern.font import (
    BLACK_PIXEL,
    FONT_HEIGHT,
    FONT_WIDTH,
    WHITE_PIXEL,
    font_render,
    font_render_string,
    glyph,
)


class RecordingCanvas:
    def __init__(self):
        self.pixels = {}
        self.calls = 0

    def draw_pixel(self, x, y, pixel):
        self.pixels[(x, y)] = pixel
        self.calls += 1


def test_space_is_blank():
    assert glyph(" ") == (0,) * FONT_HEIGHT


def test_exclamation_rows_from_table():
    rows = glyph("!")
    assert rows[1] == 0x1C0
    assert rows[11] == 0x180


def test_glyph_accepts_int_and_str():
    assert glyph(ord("A")) == glyph("A")


def test_every_printable_glyph_has_thirty_rows_of_fifteen_bits():
    for code in range(0x20, 0x7F):
        rows = glyph(code)
        assert len(rows) == FONT_HEIGHT
        assert all(0 <= r < (1 << FONT_WIDTH) for r in rows)


@pytest.mark.parametrize("code", [0x1F, 0x7F, 0x100, "\n"])
def test_unprintable_raises(code):
    with pytest.raises(ValueError):
        glyph(code)


def test_multi_character_string_rejected():
    with pytest.raises(ValueError):
        glyph("ab")


def test_render_covers_full_cell():
    canvas = RecordingCanvas()
    font_render(canvas, 10, 20, "A")
    assert canvas.calls == FONT_WIDTH * FONT_HEIGHT
    xs = {x for x, _ in canvas.pixels}
    ys = {y for _, y in canvas.pixels}
    assert xs == set(range(10, 10 + FONT_WIDTH))
    assert ys == set(range(20, 20 + FONT_HEIGHT))


def test_render_matches_glyph_bits():
    canvas = RecordingCanvas()
    font_render(canvas, 0, 0, "#")
    rows = glyph("#")
    white = sum(1 for p in canvas.pixels.values() if p == WHITE_PIXEL)
    assert white == sum(bin(r).count("1") for r in rows)
    # Bit 14 is the leftmost column.
    for i, row in enumerate(rows):
        for j in range(FONT_WIDTH):
            expected = WHITE_PIXEL if row >> (14 - j) & 1 else BLACK_PIXEL
            assert canvas.pixels[(j, i)] == expected


def test_render_space_all_black():
    canvas = RecordingCanvas()
    font_render(canvas, 0, 0, " ")
    assert set(canvas.pixels.values()) == {BLACK_PIXEL}


def test_render_string_positions():
    canvas = RecordingCanvas()
    font_render_string(canvas, "ab", 2)
    xs = {x for x, _ in canvas.pixels}
    ys = {y for _, y in canvas.pixels}
    assert min(xs) == 2
    assert max(xs) == 2 + 2 * FONT_WIDTH - 1
    assert ys == set(range(2 * FONT_HEIGHT, 3 * FONT_HEIGHT))


def test_render_string_truncates_at_52():
    canvas = RecordingCanvas()
    font_render_string(canvas, "x" * 60, 0)
    assert canvas.calls == 52 * FONT_WIDTH * FONT_HEIGHT


def test_render_string_stops_at_nul():
    canvas = RecordingCanvas()
    font_render_string(canvas, "ab\0cd", 0)
    assert canvas.calls == 2 * FONT_WIDTH * FONT_HEIGHT


def test_render_string_same_as_single_chars():
    a = RecordingCanvas()
    font_render_string(a, "Hi", 1)
    b = RecordingCanvas()
    font_render(b, 2, FONT_HEIGHT, "H")
    font_render(b, 2 + FONT_WIDTH, FONT_HEIGHT, "i")
    assert a.pixels == b.pixels