"""Small user programs: a grep with ^ . * $, cat and echo."""

from __future__ import annotations

import sys
from typing import IO, Iterable, Iterator, List, Optional


def match(pattern: str, text: str) -> bool:
    """True if ``pattern`` matches anywhere in ``text``."""
    if pattern.startswith("^"):
        return match_here(pattern[1:], text)
    return any(match_here(pattern, text[i:]) for i in range(len(text) + 1))


def match_here(pattern: str, text: str) -> bool:
    """True if ``pattern`` matches at the beginning of ``text``."""
    while True:
        if not pattern:
            return True
        if len(pattern) > 1 and pattern[1] == "*":
            return match_star(pattern[0], pattern[2:], text)
        if pattern == "$":
            return not text
        if text and (pattern[0] == "." or pattern[0] == text[0]):
            pattern, text = pattern[1:], text[1:]
            continue
        return False


def match_star(c: str, pattern: str, text: str) -> bool:
    """True if ``c*`` followed by ``pattern`` matches at the beginning of ``text``."""
    i = 0
    while True:
        if match_here(pattern, text[i:]):
            return True
        if i >= len(text) or not (text[i] == c or c == "."):
            return False
        i += 1


def grep(pattern: str, stream: Iterable[str]) -> Iterator[str]:
    """Yield the newline-terminated lines of ``stream`` that match ``pattern``."""
    for line in stream:
        if line.endswith("\n") and match(pattern, line[:-1]):
            yield line


def cat(stream: IO[bytes], out: IO[bytes]) -> None:
    """Copy ``stream`` to ``out`` in 512-byte chunks."""
    while chunk := stream.read(512):
        out.write(chunk)


def echo(args: List[str]) -> str:
    """Arguments separated by spaces; a newline ends the output only if there are any."""
    return "".join(arg + (" " if i + 1 < len(args) else "\n") for i, arg in enumerate(args))


def grep_main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print("usage: grep pattern [file ...]", file=sys.stderr)
        return 1
    pattern, paths = args[0], args[1:]
    if not paths:
        sys.stdout.writelines(grep(pattern, sys.stdin))
        return 0
    for path in paths:
        try:
            with open(path, encoding="latin-1", newline="\n") as fh:
                sys.stdout.writelines(grep(pattern, fh))
        except OSError:
            print(f"grep: cannot open {path}")
            return 1
    return 0


def cat_main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    out = sys.stdout.buffer
    if not args:
        try:
            cat(sys.stdin.buffer, out)
        except OSError:
            print("cat: read error")
            return 1
        return 0
    for path in args:
        try:
            fh = open(path, "rb")
        except OSError:
            print(f"cat: cannot open {path}")
            return 1
        with fh:
            try:
                cat(fh, out)
            except OSError:
                print("cat: read error")
                return 1
    out.flush()
    return 0


def echo_main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    sys.stdout.write(echo(args))
    return 0