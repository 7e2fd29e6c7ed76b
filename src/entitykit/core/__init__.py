"""Core infrastructure for EntityKit (configuration, logging, hooks, errors)."""
