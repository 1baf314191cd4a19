"""Unit tests for :mod:`folio.entrypoints.cli.helpers.messages`.

Glyphs fall back to ASCII when stderr cannot encode emoji, and every message
goes to stderr so stdout stays machine-readable.
"""

import io

import click
import pytest

from folio.entrypoints.cli.helpers.messages import error, glyph, success, warn


class FakeStream(io.StringIO):
    """A text stream with a controllable ``encoding``."""

    def __init__(self, encoding: str):
        super().__init__()
        self._encoding = encoding

    @property
    def encoding(self) -> str:
        return self._encoding


@pytest.mark.parametrize(
    ("encoding", "expected"),
    [
        ("ascii", {"warn": "[!]", "success": "[OK]", "error": "[X]"}),
        ("utf-8", {"warn": "⚠️", "success": "✅", "error": "❌"}),
    ],
)
def test_glyphs_respect_stream_encoding(monkeypatch, encoding, expected):
    stream = FakeStream(encoding)
    monkeypatch.setattr(click, "get_text_stream", lambda name: stream)

    assert {kind: glyph(kind) for kind in expected} == expected


@pytest.mark.parametrize("func", [warn, success, error])
def test_messages_go_to_stderr_only(monkeypatch, capsys, func):
    monkeypatch.setattr(click, "get_text_stream", lambda name: FakeStream("ascii"))

    func("database is gone")

    captured = capsys.readouterr()
    assert "database is gone" in captured.err
    assert captured.out == ""
