"""Configuration management for crptclient.

This package provides the immutable client configuration, including
YAML serialization and dotted-key overrides.
"""

from crptclient.config.settings import (
    DEFAULT_API_URL,
    ClientConfig,
    RateLimitConfig,
    TimeUnit,
    Window,
)

__all__ = [
    "DEFAULT_API_URL",
    "ClientConfig",
    "RateLimitConfig",
    "TimeUnit",
    "Window",
]
