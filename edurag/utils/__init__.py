"""Utilities for the engine."""

from edurag.utils.logger import ColoredFormatter, configure_logging, setup_logger

__all__ = ["ColoredFormatter", "configure_logging", "setup_logger"]
