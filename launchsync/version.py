"""
Central version management for Launch Sync.
"""

from __future__ import annotations

__all__ = ["__app_name__", "__version__", "__release_date__", "__author__", "__license__"]

__app_name__ = "Launch Sync"
__version__ = "1.2.0"
__release_date__ = "2026-10-19"
__author__ = "Launch Sync Contributors"
__license__ = "MIT"
