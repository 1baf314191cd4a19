"""Interfaces (application boundary) for FOLIO.

Framework-free contracts shared by the service layer, adapters and bootstrap:
the scoped store session and the request context capability.

Dependency rule: this package does not import from other `folio.*` modules.
"""
