"""Entrypoints (inbound adapters) for FOLIO.

Expose the application to the outside world. Currently this is the ``folio``
command-line interface, which drives startup and database management.
"""
