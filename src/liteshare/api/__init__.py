"""API package for the upload quota service."""

from liteshare.api.app import create_app
from liteshare.api.routes import router

__all__ = ["create_app", "router"]
