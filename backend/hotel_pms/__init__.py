"""Hotel booking admission and lifecycle service."""

__version__ = "1.0.0"
