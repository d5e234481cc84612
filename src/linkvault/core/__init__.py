"""Core services: record store, derived views, import/export and lookups."""
