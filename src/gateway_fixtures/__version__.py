"""Version information for gateway_fixtures."""

__version__ = "0.1.0"
