"""Shared pytest fixtures (registered via ``pytest_plugins``)."""
