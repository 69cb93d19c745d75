"""
Connection commands for the jupygate plugin.

This module contains command implementation functions for:
- Picking a remote kernel for the current buffer
- Disconnecting the current buffer from its remote kernel
"""

from ..models import DocumentContext
from ..picker import language_filter
from ..utils.notifications import notify_user


def get_document_context(nvim, logger) -> DocumentContext:
    """
    Describe the current buffer: its file path and filetype.

    Args:
        nvim: The pynvim.Nvim instance for interacting with Neovim
        logger: Logger instance for error reporting
    """
    buffer = nvim.current.buffer
    try:
        path = buffer.name or None
    except Exception as e:
        logger.warning(f"Could not read buffer name: {e}")
        path = None
    try:
        language = buffer.options['filetype'] or None
    except Exception as e:
        logger.warning(f"Could not read buffer filetype: {e}")
        language = None
    return DocumentContext(path=path, language=language)


async def connect_command_impl(plugin, bnum: int, context: DocumentContext):
    """
    Implementation for picking a remote kernel for a buffer.

    Args:
        plugin: The main JupyGate plugin instance
        bnum: Buffer number the kernel is for
        context: The buffer's path and filetype, collected synchronously
    """
    plugin._logger.info(f"JupyGateConnect called for buffer {bnum} ({context.language or 'no filetype'})")
    if plugin.picker.active:
        plugin._logger.info(f"Kernel picker busy ({plugin.picker.state.value}); ignoring connect for buffer {bnum}")
        return None
    plugin.pending_context = context
    plugin.pending_bnum = bnum
    kernel = await plugin.picker.toggle(language_filter(context.language), context)
    if kernel is None:
        return None

    await plugin.registry.register(bnum, kernel)
    await kernel.session.open_channel()
    return kernel


async def disconnect_command_impl(plugin, bnum: int, shutdown: bool = False):
    """
    Implementation for disconnecting a buffer from its remote kernel.

    Args:
        plugin: The main JupyGate plugin instance
        bnum: Buffer number
        shutdown: Also delete the session on the gateway
    """
    plugin._logger.info(f"JupyGateDisconnect called for buffer {bnum} (shutdown={shutdown})")
    disconnected = await plugin.registry.disconnect(bnum, shutdown=shutdown)
    if disconnected:
        plugin.nvim.async_call(lambda: notify_user(plugin.nvim, "Remote kernel disconnected"))
    else:
        plugin.nvim.async_call(
            lambda: notify_user(plugin.nvim, "No remote kernel connected to this buffer", level='error')
        )
    return disconnected
