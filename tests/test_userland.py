import io

import pytest

from uefikern.userland import (
    cat,
    cat_main,
    echo,
    echo_main,
    grep,
    grep_main,
    match,
    match_here,
    match_star,
)


@pytest.mark.parametrize(
    "pattern, text, expected",
    [
        ("^ab", "abc", True),
        ("^b", "ab", False),
        ("b.d", "abcd", True),
        ("a*b", "b", True),
        ("x$", "ax", True),
        ("x$", "xa", False),
        ("", "", True),
        ("q", "abc", False),
    ],
)
def test_match(pattern, text, expected):
    assert match(pattern, text) is expected


def test_anchored_match_equals_match_here():
    for text in ["abc", "xabc", ""]:
        assert match("^ab", text) == match_here("ab", text)


def test_match_star_dot_consumes_any():
    assert match_star(".", "z", "abcz")
    assert not match_star("a", "z", "abz")


def test_match_long_text():
    assert match("^a*b$", "a" * 5000 + "b")


def test_grep_only_terminated_lines():
    stream = io.StringIO("apple\nberry\ncherry\nbanana")
    assert list(grep("a", stream)) == ["apple\n"]


def test_grep_all_lines_match_empty_pattern():
    lines = ["one\n", "two\n"]
    assert list(grep("", lines)) == lines


def test_cat_copies_bytes():
    data = bytes(range(256)) * 5
    out = io.BytesIO()
    cat(io.BytesIO(data), out)
    assert out.getvalue() == data


def test_echo():
    assert echo(["a", "b"]) == "a b\n"
    assert echo([]) == ""


def test_echo_main(capsys):
    assert echo_main(["hello", "world"]) == 0
    assert capsys.readouterr().out == "hello world\n"


def test_grep_main_file(tmp_path, capsys):
    path = tmp_path / "words"
    path.write_text("cat\ndog\ncar\n")
    assert grep_main(["^ca", str(path)]) == 0
    assert capsys.readouterr().out == "cat\ncar\n"


def test_grep_main_missing_file(tmp_path, capsys):
    missing = str(tmp_path / "none")
    assert grep_main(["x", missing]) == 1
    assert missing in capsys.readouterr().out


def test_grep_main_usage():
    assert grep_main([]) == 1


def test_cat_main_missing_file(tmp_path, capsys):
    missing = str(tmp_path / "none")
    assert cat_main([missing]) == 1
    assert "cannot open" in capsys.readouterr().out