"""The ``folio`` command-line interface."""

from .main import folio

__all__ = ["folio"]
