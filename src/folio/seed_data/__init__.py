"""Bundled default seed data (``seedData/*.json``)."""
