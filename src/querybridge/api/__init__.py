"""HTTP surface of QueryBridge."""

from .app import create_app

__all__ = ["create_app"]
