"""Route group exports."""

from . import geocoding, health, maps, routing, schedules, workers

__all__ = ["geocoding", "health", "maps", "routing", "schedules", "workers"]
