"""Logging helpers."""

from .logging import ExtraFormatter, configure_logging

__all__ = ["ExtraFormatter", "configure_logging"]
