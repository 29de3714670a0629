import pytest

from uefikern.kbd import CAPSLOCK, KEY_UP, KeyboardDecoder


def test_plain_letter():
    assert KeyboardDecoder().feed(0x1E) == ord("a")


def test_shift_and_release():
    kbd = KeyboardDecoder()
    assert kbd.decode([0x2A, 0x1E, 0xAA, 0x1E]) == [ord("A"), ord("a")]


def test_shifted_digit():
    kbd = KeyboardDecoder()
    assert kbd.decode([0x2A, 0x02]) == [ord("!")]


def test_control_letter():
    kbd = KeyboardDecoder()
    assert kbd.decode([0x1D, 0x1E]) == [1]


def test_capslock_toggles():
    kbd = KeyboardDecoder()
    assert kbd.decode([0x3A, 0xBA, 0x1E]) == [ord("A")]
    assert kbd.shift & CAPSLOCK
    assert kbd.decode([0x2A, 0x1E]) == [ord("a")]
    assert kbd.decode([0xAA, 0x3A, 0xBA, 0x1E]) == [ord("a")]


def test_escaped_arrow_key():
    kbd = KeyboardDecoder()
    assert kbd.decode([0xE0, 0x48]) == [KEY_UP]
    assert kbd.shift == 0


def test_escaped_release_of_right_control():
    kbd = KeyboardDecoder()
    kbd.decode([0xE0, 0x1D])
    assert kbd.decode([0x1E]) == [1]
    kbd.decode([0xE0, 0x9D])
    assert kbd.decode([0x1E]) == [ord("a")]


def test_enter_key():
    assert KeyboardDecoder().feed(0x1C) == ord("\n")


def test_non_byte_rejected():
    with pytest.raises(ValueError):
        KeyboardDecoder().feed(0x100)