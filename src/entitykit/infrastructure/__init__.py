"""Infrastructure adapters: key-value backends, snapshot persistence, notifications."""
