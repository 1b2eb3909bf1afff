"""Match snapshot persistence: configuration, validation and SQLite store."""
