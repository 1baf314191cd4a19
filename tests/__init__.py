"""FOLIO test suite.

Folder taxonomy
- unit/         : Isolated, fast checks of a single module/class/function.
- integration/  : Real interactions with a (SQLite) store and the filesystem.
- functional/   : The ``folio`` CLI driven end-to-end through ``CliRunner``.
- fixtures/     : Shared fixtures, registered via ``pytest_plugins``.

General guidance
- Keep unit tests free of database I/O; temp files are fine.
- Integration tests build real hosts, providers and migrated stores.
- Functional tests assert user-observable output and exit codes.
"""
