"""
CLI entry point for running swcache as a module.

Usage: python -m swcache [OPTIONS] COMMAND [ARGS]...
"""

from swcache.cli.main import cli

if __name__ == "__main__":
    cli()
