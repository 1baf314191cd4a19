"""Service layer for FOLIO.

Application use-cases consumed by the (external) controller layer, and the
module that registers them with the composition root.

Dependency rule: may import `folio.interfaces`, `folio.bootstrap.registry`
and the table definitions in `folio.adapters.db.schema`; never
`folio.entrypoints`.
"""
