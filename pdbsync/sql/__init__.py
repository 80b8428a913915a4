"""SQL resources shipped with pdbsync (table definitions)."""
