"""Logging configuration for gateway_fixtures."""

from gateway_fixtures.logging.config import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
