"""Core utilities shared across the generator."""

from .config import GenerationSettings, get_settings  # noqa: F401
from .log import get_logger  # noqa: F401

__all__ = ["GenerationSettings", "get_settings", "get_logger"]
