"""Bootstrap (composition root) for FOLIO.

Assembles the application at process start: resolves settings, builds the
environment context, composes the service provider from native and module
registrations, and prepares the database before any request is served.

Import rules:
- Entry points import the submodules of this package (`host`, `composition`).
- This package may import every other `folio` package; inner layers must not
  import `folio.bootstrap`, except `folio.bootstrap.registry`, which the
  service-layer modules use to register themselves.
- No business rules live here; this is assembly and lifecycle only.
"""
