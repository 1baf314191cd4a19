"""Alembic migration environment for FOLIO (loaded by path, not imported)."""
