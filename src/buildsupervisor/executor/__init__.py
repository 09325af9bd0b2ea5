"""
Build execution management for the buildsupervisor package.

This module provides the ProcessRunner, which spawns a build command,
streams its output and terminates its process tree.
"""

from .process_runner import ProcessRunner

__all__ = [
    "ProcessRunner",
]
