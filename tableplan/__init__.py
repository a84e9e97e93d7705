"""Table scheduling and conflict-resolution engine for a restaurant floor."""

__version__ = "1.0.0"
