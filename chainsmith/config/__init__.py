"""
Configuration layer: environment-driven settings and logging setup.
"""

from chainsmith.config.logging import get_logger, setup_logging
from chainsmith.config.settings import (
    AgentSettings,
    LLMSettings,
    MemorySettings,
    Settings,
    get_settings,
    load_settings,
)

__all__ = [
    "AgentSettings",
    "LLMSettings",
    "MemorySettings",
    "Settings",
    "get_logger",
    "get_settings",
    "load_settings",
    "setup_logging",
]
