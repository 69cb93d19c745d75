"""
AsyncExecutor - runs jupygate coroutines from synchronous pynvim handlers.
"""

import asyncio
import logging
from typing import Any, Awaitable, Optional

from ..errors import UserCancelled
from ..utils.notifications import report_failure


class AsyncExecutor:
    """
    Schedules plugin coroutines on the pynvim event loop.

    Failures are logged and reported through report_failure; a UserCancelled
    escaping a coroutine is swallowed silently.
    """

    def __init__(self, nvim, logger: Optional[logging.Logger] = None):
        """
        Initialize the AsyncExecutor.

        Args:
            nvim: The pynvim.Nvim instance for interacting with Neovim
            logger: Optional logger instance. If None, will create one.
        """
        self.nvim = nvim
        self._logger = logger or logging.getLogger("jupygate.async_executor")

    async def execute_async(self, coro: Awaitable[Any], error_context: str = "operation") -> Any:
        """
        Await ``coro``, reporting any failure under ``error_context``.

        Returns:
            The coroutine's result, or None if the user cancelled
        """
        try:
            return await coro
        except UserCancelled:
            self._logger.info(f"{error_context} cancelled by user")
            return None
        except Exception as e:
            self._logger.error(f"{error_context} failed: {e}")
            report_failure(self.nvim, f"{error_context} failed", str(e))
            raise

    def execute_sync(self, coro: Awaitable[Any], error_context: str = "operation") -> Any:
        """
        Run ``coro`` from a synchronous command handler.

        When the loop is already running (the normal case inside the pynvim
        host) the coroutine is scheduled as a background task and None is
        returned, so pynvim never tries to serialize a task.
        """
        if coro is None:
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop in this thread - run to completion
            return asyncio.run(self.execute_async(coro, error_context))

        task = loop.create_task(self.execute_async(coro, error_context))

        def log_task_exception(done: asyncio.Task):
            if done.cancelled():
                return
            if done.exception():
                # Already reported by execute_async
                self._logger.debug(f"Background task for {error_context} ended with {done.exception()!r}")

        task.add_done_callback(log_task_exception)
        return None
