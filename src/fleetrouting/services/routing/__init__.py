"""OSRM-backed routing with caching, rate limiting and offline fallbacks."""
