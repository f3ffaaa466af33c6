"""
iambench CLI - Command Line Interface for iambench

Provides commands for:
- Running the measurement loop for one policy flavor
- Running the fixed-size benchmark suite
"""

from iambench.cli.main import cli, main

__all__ = ["cli", "main"]
