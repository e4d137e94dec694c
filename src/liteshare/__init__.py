"""LiteShare upload quota service."""

__version__ = "0.1.0"
