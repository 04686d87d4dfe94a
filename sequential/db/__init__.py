"""SQLite persistence for resolved collections."""
