"""SQLite entity store: engine, migrations and per-aggregate repositories."""
