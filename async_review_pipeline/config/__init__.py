"""
Configuration management for the analysis pipeline.

Settings are environment-driven, type-safe and explicitly constructed.
"""

from .settings import PipelineSettings, load_settings

__all__ = [
    "PipelineSettings",
    "load_settings",
]
