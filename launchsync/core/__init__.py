"""Core data layer: games, identity mappings, and the apps.json document."""
