"""Adapters (infrastructure) for FOLIO.

Concrete implementations of the interfaces: the SQLAlchemy engine and store
session, connection string composition, schema and migrations, and the
context-variable request context accessor.

Dependency rule: may import `folio.interfaces`; the interfaces must not import
this package.
"""
