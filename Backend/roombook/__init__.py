"""Room booking backend."""
