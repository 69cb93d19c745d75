import asyncio
import logging
import os
logging.basicConfig(filename=os.environ.get("JUPYGATE_LOG_FILE", "/tmp/jupygate.log"), level=logging.DEBUG)
from typing import Optional

import pynvim

from .gateway_client import GatewayClient
from .kernel_registry import RemoteKernelRegistry
from .models import DocumentContext, ResolvedKernel
from .picker import KernelPicker
from .ui_manager import NvimChooser, NvimPrompter

# Import utilities
from .utils.notifications import notify_user, report_failure

# Import core modules
from .core.config import get_gateways
from .core.async_executor import AsyncExecutor

# Import command implementations
from .commands.connection import connect_command_impl, disconnect_command_impl, get_document_context
from .commands.debug import debug_command_impl, status_command_impl


@pynvim.plugin
class JupyGate:
    """
    Main jupygate plugin class.

    Connects buffers to kernels running behind a Jupyter Kernel Gateway or
    notebook server, negotiating credentials when the gateway asks for them.
    """

    def __init__(self, nvim):
        """
        Initialize the plugin with all required components.

        Args:
            nvim: The pynvim.Nvim instance for interacting with Neovim.
        """
        self.nvim = nvim

        # Set up logging
        self._logger = logging.getLogger("jupygate.main")

        self.registry = RemoteKernelRegistry()
        self.chooser = NvimChooser(nvim)
        self.prompter = NvimPrompter(nvim)
        self.client = GatewayClient()

        # Filled in by the connect command before each toggle
        self.pending_context: Optional[DocumentContext] = None
        self.pending_bnum: Optional[int] = None

        self.picker = KernelPicker(
            on_chosen=self._on_kernel_chosen,
            chooser=self.chooser,
            prompter=self.prompter,
            client=self.client,
            list_gateways=lambda: get_gateways(self.nvim, self._logger),
            report_failure=lambda title, description=None: report_failure(self.nvim, title, description),
            get_document_context=lambda: self.pending_context,
        )

        self.async_executor = AsyncExecutor(nvim, self._logger)
        self._cleanup_lock = asyncio.Lock()

        self._logger.info("jupygate plugin initialized")

    def _on_kernel_chosen(self, kernel: ResolvedKernel):
        message = f"Connected to {kernel.kernel_spec.display_name} on {kernel.gateway_name}"
        self._logger.info(f"{message} for buffer {self.pending_bnum}")
        self.nvim.async_call(lambda: notify_user(self.nvim, message))

    @pynvim.autocmd("VimLeave", sync=True)
    def on_vim_leave(self):
        """
        Close remote kernel connections without blocking Neovim's exit.
        """
        self._logger.info("Vim leaving - scheduling remote session cleanup.")
        try:
            loop = asyncio.get_running_loop()
            asyncio.run_coroutine_threadsafe(self._async_cleanup(), loop)
        except Exception as e:
            self._logger.error(f"Error scheduling VimLeave cleanup: {e}")

    async def _async_cleanup(self):
        async with self._cleanup_lock:
            self.chooser.destroy()
            try:
                await self.registry.close_all()
            except Exception as e:
                self._logger.error(f"Error closing remote kernels: {e}")
            self._logger.info("Async cleanup completed")

    @pynvim.command('JupyGateConnect', sync=True)
    def connect_command(self):
        """
        Pick a remote kernel for the current buffer.
        """
        try:
            bnum = self.nvim.current.buffer.number
            context = get_document_context(self.nvim, self._logger)
        except Exception as e:
            self._logger.error(f"Error reading current buffer: {e}")
            notify_user(self.nvim, f"Error accessing buffer: {e}", level='error')
            return
        self.async_executor.execute_sync(connect_command_impl(self, bnum, context), "Remote kernel connection")

    @pynvim.command('JupyGateDisconnect', nargs='?', sync=True)
    def disconnect_command(self, args=None):
        """
        Disconnect the current buffer from its remote kernel.

        With the argument ``shutdown`` the session is also deleted on the gateway.
        """
        shutdown = bool(args) and args[0] == 'shutdown'
        try:
            bnum = self.nvim.current.buffer.number
        except Exception as e:
            self._logger.error(f"Error reading current buffer: {e}")
            notify_user(self.nvim, f"Error accessing buffer: {e}", level='error')
            return
        self.async_executor.execute_sync(disconnect_command_impl(self, bnum, shutdown), "Remote kernel disconnect")

    @pynvim.command('JupyGateStatus', sync=True)
    def status_command(self):
        """Show connected remote kernels."""
        status_command_impl(self)

    @pynvim.command('JupyGateDebug', sync=True)
    def debug_command(self):
        """Show dependency and gateway diagnostics."""
        debug_command_impl(self)
