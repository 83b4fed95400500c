"""Configuration package for the checkout backend."""
from .settings import get_settings, Settings

__all__ = ["Settings", "get_settings"]
