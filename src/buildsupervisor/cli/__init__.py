"""
Command-line interface for the buildsupervisor package.

This module provides the main CLI entry point for the supervisor application.
"""

from .main import main_cli

__all__ = [
    "main_cli",
]
