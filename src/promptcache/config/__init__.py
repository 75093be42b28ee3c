"""Configuration management for PromptCache.

Provides service settings from environment variables (AppSettings). The
semantic core never reads the environment itself; AppSettings converts raw
values into a ThresholdConfig and per-provider settings at startup.
"""

from .app_settings import AppSettings, get_settings

__all__ = [
    "AppSettings",
    "get_settings",
]
