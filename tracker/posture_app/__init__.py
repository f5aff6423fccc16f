"""Student posture tracker client."""

__version__ = "0.1.0"
