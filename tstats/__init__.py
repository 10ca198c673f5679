"""Current temperature at the caller's IP-derived location."""

__version__ = "0.1.0"
