"""
Debug and status commands for the jupygate plugin.

This module contains command implementation functions for:
- Connected remote kernel status
- Debug diagnostics
"""

import aiohttp

from ..core.config import get_gateways, get_request_timeout


def status_command_impl(plugin):
    """
    Implementation for showing which buffers are connected to which remote kernels.

    Args:
        plugin: The main JupyGate plugin instance
    """
    try:
        kernels = plugin.registry.list_kernels()
        status_msg = f"""jupygate Status:
  Picker: {plugin.picker.state.value}
  Remote Kernels: {len(kernels)} connected
"""
        if kernels:
            status_msg += "\nConnected Kernels:\n"
            for bnum, info in kernels.items():
                channel = "open" if info['channel_open'] else "closed"
                status_msg += (
                    f"  buffer {bnum}: {info['display_name']} on {info['gateway']}"
                    f" (session {info['short_id']}, channel {channel})\n"
                )

        plugin.nvim.out_write(status_msg)

    except Exception as e:
        plugin._logger.error(f"Error in JupyGateStatus: {e}")
        plugin.nvim.err_write(f"Status error: {e}\n")


def debug_command_impl(plugin):
    """
    Implementation for debug command showing dependencies and gateway configuration.

    Args:
        plugin: The main JupyGate plugin instance
    """
    try:
        plugin._logger.info("JupyGateDebug called")
        plugin.nvim.out_write("=== jupygate Debug Info ===\n")
        plugin.nvim.out_write("✓ Plugin loaded and responding\n")

        plugin.nvim.out_write(f"✓ aiohttp {aiohttp.__version__} available\n")

        gateways = get_gateways(plugin.nvim, plugin._logger)
        timeout = get_request_timeout(plugin.nvim, plugin._logger)
        if gateways:
            plugin.nvim.out_write(f"✓ {len(gateways)} gateways configured (timeout {timeout}s)\n")
            for gateway in gateways:
                auth = "token" if gateway.options.token else "none"
                plugin.nvim.out_write(f"    {gateway.name}: {gateway.options.base_url} (auth: {auth})\n")
        else:
            plugin.nvim.out_write("✗ No gateways configured (set g:jupygate_gateways)\n")

        plugin.nvim.out_write("=== End Debug Info ===\n")

    except Exception as e:
        plugin._logger.error(f"Error in JupyGateDebug: {e}")
        plugin.nvim.err_write(f"Debug error: {e}\n")
