"""Tests for LineFramer."""

import random

import pytest

from mcpbridge.mcp.framer import LineFramer
from mcpbridge.utils.exceptions import FramingOverflowError

STREAM = (
    '{"id":1,"result":{}}\n'
    "\n"
    "not json at all\n"
    '{"id":2,"result":{"text":"héllo ✓"}}\r\n'
    "   \n"
    '{"jsonrpc":"2.0","method":"notifications/message"}\n'
    "trailing partial"
)


def _expected_lines(stream: str) -> list[str]:
    lines = stream.split("\n")[:-1]
    return [l.rstrip("\r") for l in lines if l.strip()]


def test_framer_emits_complete_lines_and_buffers_partial():
    framer = LineFramer()
    assert list(framer.feed('{"id":1}\n{"id"')) == ['{"id":1}']
    assert framer.pending == len('{"id"')
    assert list(framer.feed(':2}\n')) == ['{"id":2}']
    assert framer.pending == 0


def test_framer_without_terminator_emits_nothing():
    framer = LineFramer()
    assert list(framer.feed('{"id":1,"result":{}}')) == []
    assert framer.pending > 0


def test_framer_skips_blank_lines():
    framer = LineFramer()
    assert list(framer.feed("\n  \n\t\n")) == []


def test_framer_strips_crlf():
    framer = LineFramer()
    assert list(framer.feed("a\r\nb\n")) == ["a", "b"]


def test_framer_split_invariant_for_every_two_way_split():
    expected = _expected_lines(STREAM)
    for cut in range(len(STREAM) + 1):
        framer = LineFramer()
        out = list(framer.feed(STREAM[:cut])) + list(framer.feed(STREAM[cut:]))
        assert out == expected, f"split at {cut}"


def test_framer_split_invariant_for_random_byte_chunks():
    data = STREAM.encode("utf-8")
    expected = _expected_lines(STREAM)
    rng = random.Random(1234)
    for _ in range(200):
        framer = LineFramer()
        out: list[str] = []
        pos = 0
        while pos < len(data):
            size = rng.randint(1, 7)
            out.extend(framer.feed(data[pos:pos + size]))
            pos += size
        assert out == expected


def test_framer_decodes_multibyte_char_split_across_chunks():
    framer = LineFramer()
    data = "✓\n".encode("utf-8")
    assert list(framer.feed(data[:1])) == []
    assert list(framer.feed(data[1:2])) == []
    assert list(framer.feed(data[2:])) == ["✓"]


def test_framer_flush_returns_remainder_once():
    framer = LineFramer()
    list(framer.feed("done\npartial"))
    assert framer.flush() == "partial"
    assert framer.flush() is None


def test_framer_overflow_raises_and_resets():
    framer = LineFramer(max_buffer_size=16)
    with pytest.raises(FramingOverflowError):
        list(framer.feed("x" * 17))
    assert framer.pending == 0
    assert list(framer.feed("ok\n")) == ["ok"]


def test_framer_complete_lines_do_not_count_against_limit():
    framer = LineFramer(max_buffer_size=16)
    assert list(framer.feed("short\n" * 10)) == ["short"] * 10


def test_framer_rejects_non_positive_limit():
    with pytest.raises(ValueError):
        LineFramer(max_buffer_size=0)
