"""Stremio add-on that turns a personal M3U playlist into browsable catalogs."""

from __future__ import annotations

from app.main import ADDON_VERSION as __version__
from app.main import app, create_app

__all__ = ["__version__", "app", "create_app"]
