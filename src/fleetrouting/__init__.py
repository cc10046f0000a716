"""Route, trip and distance-matrix computation over OSRM with offline fallbacks."""

__version__ = "0.1.0"
