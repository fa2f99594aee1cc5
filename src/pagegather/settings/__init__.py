"""Settings package. Re-exports the cached settings accessor."""

from pagegather.settings.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
