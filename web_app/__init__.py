"""HTTP surface for the short link service."""

from .app_factory import create_app

__all__ = ["create_app"]
