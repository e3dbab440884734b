"""Resiliencia del path de ingesta (backoff de reconexión)."""

from .retry import RetryConfig

__all__ = ["RetryConfig"]
