"""
Configuration for world generation.
"""

from .config import GeneratorSettings, Settings, settings

__all__ = ["GeneratorSettings", "Settings", "settings"]
