"""
Integration layer: quoting and configuration/wiring around the core engines
"""

from .config import EngineConfig, System, build_system, engine_config_from_mapping, load_engine_config
from .quoter import QUOTER_ADDRESS, Quoter

__all__ = [
    "EngineConfig",
    "System",
    "build_system",
    "engine_config_from_mapping",
    "load_engine_config",
    "QUOTER_ADDRESS",
    "Quoter",
]
