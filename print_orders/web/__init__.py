"""Web interface for the print order engine."""

from .app import create_app

__all__ = ["create_app"]
