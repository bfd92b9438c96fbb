"""
Configuration module for the EVTC log processing pipeline.

Provides the explicit settings value passed to the pipeline, the YAML
override loader and static game data.
"""

from .settings import ParserSettings, AGENT_RESOLUTION_STRATEGIES
from .loader import ConfigLoader, load_settings

__all__ = [
    "ParserSettings",
    "AGENT_RESOLUTION_STRATEGIES",
    "ConfigLoader",
    "load_settings",
]
