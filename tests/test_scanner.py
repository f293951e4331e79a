import pytest

from easytelnet import LineScanner, find_line_start, scan_until


def _reader(data: bytes):
    it = iter(data)

    def read_byte() -> int:
        try:
            return next(it)
        except StopIteration:
            raise EOFError("telnet connection closed") from None

    return read_byte


def test_find_line_start() -> None:
    assert find_line_start(b"no newline here") == -1
    assert find_line_start(b"one\r\ntwo") == 5
    assert find_line_start(b"one\r\ntwo\r\nthree") == 10
    assert find_line_start(b"ends\r\n") == 6


def test_find_line_start_ignores_lone_bytes() -> None:
    assert find_line_start(b"a\nb\rc") == -1
    assert find_line_start(b"a\n\rb") == -1


def test_find_line_start_from_offset() -> None:
    assert find_line_start(b"a\r\nb\r\nc", 4) == 6
    assert find_line_start(b"a\r\nbc", 3) == -1


def test_scanner_returns_fragment_on_delimiter() -> None:
    scanner = LineScanner()
    assert [scanner.feed(c) for c in b"ab"] == [None, None]
    assert scanner.feed(ord(" ")) == b"ab "
    assert scanner.output == b"ab "


def test_scanner_fragment_starts_after_last_line_break() -> None:
    scanner = LineScanner()
    fragments = [f for f in (scanner.feed(c) for c in b"first line\r\nsecond line\r\nprompt$ ") if f is not None]
    assert fragments == [b"first ", b"second ", b"prompt$ "]


def test_scanner_fragment_grows_within_line() -> None:
    scanner = LineScanner()
    fragments = [f for f in (scanner.feed(c) for c in b"host username: ") if f is not None]
    assert fragments == [b"host ", b"host username: "]


def test_scanner_line_start_is_monotonic() -> None:
    data = b"a b\r\nc d\r\n\r\ne f g\r\nh "
    scanner = LineScanner()
    previous = 0
    for char in data:
        scanner.feed(char)
        assert previous <= scanner.line_start <= len(scanner.output)
        previous = scanner.line_start
    assert scanner.line_start == len(b"a b\r\nc d\r\n\r\ne f g\r\n")


def test_scanner_line_break_split_across_fragments() -> None:
    scanner = LineScanner(delimiter=b"\r")
    for char in b"abc\r":
        scanner.feed(char)
    assert scanner.line_start == 0
    for char in b"\nxy\r":
        scanner.feed(char)
    assert scanner.line_start == len(b"abc\r\n")


def test_scanner_skip_line() -> None:
    scanner = LineScanner()
    for char in b"host username: ":
        scanner.feed(char)
    scanner.skip_line()
    fragments = [f for f in (scanner.feed(c) for c in b"user@host:~$ ") if f is not None]
    assert fragments == [b"user@host:~$ "]
    assert scanner.output == b"host username: user@host:~$ "


def test_scanner_rejects_long_delimiter() -> None:
    with pytest.raises(ValueError):
        LineScanner(delimiter=b"  ")


def test_scan_until() -> None:
    seen = []

    def predicate(fragment: bytes) -> bool:
        seen.append(fragment)
        return fragment.endswith(b"$ ")

    output = scan_until(_reader(b"hello world\r\nbox$ trailing"), predicate)
    assert output == b"hello world\r\nbox$ "
    assert seen == [b"hello ", b"box$ "]


def test_scan_until_propagates_eof() -> None:
    with pytest.raises(EOFError):
        scan_until(_reader(b"no prompt here"), lambda fragment: False)
