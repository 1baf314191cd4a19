"""Database adapters: engine factory, schema, migrations and connection strings."""
