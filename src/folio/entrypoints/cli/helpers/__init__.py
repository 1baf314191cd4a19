"""CLI helpers for FOLIO: stderr message emitters and option parsers."""

from .messages import error, success, warn

__all__ = ["error", "success", "warn"]
