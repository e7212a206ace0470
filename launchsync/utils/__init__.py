"""Shared helpers: JSON file I/O, resource paths, translations, UUID text."""
