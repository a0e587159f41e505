"""TMDB metadata enricher plugin service."""

__version__ = "1.0.0"
