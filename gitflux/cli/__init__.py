"""Command line interface for gitflux."""

from .main import app

__all__ = ["app"]
