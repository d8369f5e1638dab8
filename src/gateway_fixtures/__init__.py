"""Kubernetes-hosted API gateway fixtures for end-to-end tests."""

from gateway_fixtures.__version__ import __version__

__all__ = ["__version__"]
