"""
Command execution utilities.

This module provides a helper for running short-lived system commands such as
process table snapshots, capturing their output with robust error handling.
"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)


def run_command(
    command: List[str], cwd: Optional[Path] = None, timeout: Optional[float] = None
) -> Tuple[int, str, str]:
    """Execute a command and capture its output with robust error handling.

    Args:
        command: Argument vector to execute.
        cwd: Working directory path for command execution.
        timeout: Seconds before the command is abandoned, None for no limit.

    Returns:
        Tuple of (return_code, stdout_string, stderr_string).
        return_code is -1 for execution errors.

    Note:
        Uses UTF-8 encoding with error replacement for robust text handling.
    """
    logger.debug(f"Executing command: '{' '.join(command)}' in '{cwd or '.'}'")
    try:
        process = subprocess.run(
            command,
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
        return process.returncode, process.stdout, process.stderr
    except FileNotFoundError as e:
        logger.error(f"Command not found: {command[0]}: {type(e).__name__}: {e}")
        return -1, "", f"Error: Command not found '{command[0]}'"
    except subprocess.TimeoutExpired:
        logger.error(f"Command '{' '.join(command)}' timed out after {timeout}s")
        return -1, "", f"Error: Command timed out after {timeout}s"
    except Exception as e:
        logger.error(f"Unexpected error while running command '{' '.join(command)[:50]}': "
                     f"{type(e).__name__}: {e}", exc_info=True)
        return -1, "", f"An unexpected error occurred: {e}"
