"""
Pattern Monitor CLI
===================
Command-line interface for running and inspecting the pattern monitor.
"""

from .main import cli, main

__all__ = ["cli", "main"]
