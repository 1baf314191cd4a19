"""Terminal message helpers for the FOLIO CLI.

Messages go to stderr so stdout stays machine-readable. Emoji glyphs fall back
to ASCII on terminals that cannot encode them.
"""

import click

GLYPHS = {
    "warn": ("⚠️", "[!]"),  # pragma: no mutate
    "success": ("✅", "[OK]"),  # pragma: no mutate
    "error": ("❌", "[X]"),  # pragma: no mutate
}


def _supports_character(character: str) -> bool:
    """Return True if *character* can be encoded on stderr."""
    encoding = getattr(click.get_text_stream("stderr"), "encoding", None) or "ascii"
    try:
        character.encode(encoding)
    except UnicodeEncodeError:
        return False
    return True


def glyph(kind: str) -> str:
    """Return the emoji for ``kind`` if stderr can show it, else its ASCII form."""
    emoji, fallback = GLYPHS[kind]
    return emoji if _supports_character(emoji) else fallback


def warn(msg: str) -> None:
    """Yellow warning line on stderr, e.g. ``⚠️  This will modify your database.``"""
    click.secho(f"{glyph('warn')}  {msg}", fg="yellow", bold=True, err=True)


def success(msg: str) -> None:
    """Green success line on stderr, e.g. ``✅  Ready to serve.``"""
    click.secho(f"{glyph('success')}  {msg}", fg="green", bold=True, err=True)


def error(msg: str) -> None:
    """Red error line on stderr, e.g. ``❌  Cannot connect to database.``"""
    click.secho(f"{glyph('error')}  {msg}", fg="red", bold=True, err=True)
