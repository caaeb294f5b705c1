"""HTTP 어댑터"""

from .server import create_app

__all__ = ["create_app"]
