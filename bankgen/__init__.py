"""Deterministic, parallel synthetic banking data generator."""

from .core import GenerationSettings, get_logger, get_settings
from .orchestrator import GenerationResult, Orchestrator

__version__ = "0.1.0"

__all__ = [
    "GenerationResult",
    "GenerationSettings",
    "Orchestrator",
    "get_logger",
    "get_settings",
]
