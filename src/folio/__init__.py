"""FOLIO

Startup composition root for the Folio book-catalogue server.
It resolves layered configuration, assembles the service graph, and
prepares the database (migrations and seed data) before any request
is served.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
