"""Domain layer: schema, query and notification types plus pure services."""
