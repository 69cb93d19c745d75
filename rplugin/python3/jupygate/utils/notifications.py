"""
User notification utilities for the jupygate plugin.

This module contains utility functions for notifying users in a standardized
way across the plugin.
"""
import logging
from typing import Any, Optional

logger = logging.getLogger('jupygate.notifications')


def notify_user(nvim: Any, message: str, level: str = 'info') -> None:
    """
    Send a single-line notification to the user.

    Args:
        nvim: The pynvim.Nvim instance for interacting with Neovim
        message: The message to display to the user
        level: The notification level ('info' or 'error')
    """
    if level == 'info':
        nvim.out_write(message + '\n')
    elif level == 'error':
        nvim.err_write(message + '\n')


def notify_error_after_input(nvim: Any, message: str) -> None:
    """
    Display an error message after an input() dialog without requiring enter press.

    Args:
        nvim: The pynvim.Nvim instance for interacting with Neovim
        message: The error message to display
    """
    nvim.command('redraw')
    # Escape single quotes for vim command
    escaped = message.replace("'", "''")
    nvim.command(f"echohl ErrorMsg | echo '{escaped}' | echohl None")


def report_failure(nvim: Any, title: str, description: Optional[str] = None) -> None:
    """
    Fire-and-forget error report, safe to call from async code.

    Args:
        nvim: The pynvim.Nvim instance for interacting with Neovim
        title: One-line summary
        description: Optional longer explanation appended to the title
    """
    message = f"{title}: {description}" if description else title
    logger.error(message)

    def show():
        notify_error_after_input(nvim, message)

    try:
        nvim.async_call(show)
    except Exception as e:
        logger.error(f"Failed to report failure to user: {e}")
