"""
Command-line interface for swcache.

Provides Click-based CLI commands for classifying and routing requests,
checking worker versions, and managing the local stores.
"""

from swcache.cli.main import cli

__all__ = ["cli"]
