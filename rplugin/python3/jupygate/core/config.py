"""
Configuration management utilities for the jupygate plugin.

This module contains functions for retrieving plugin configuration from Neovim
global variables with appropriate defaults and error handling.
"""
import logging
from typing import Any, List

from ..models import DEFAULT_REQUEST_TIMEOUT, ConnectionOptions, GatewayDescriptor


def get_request_timeout(nvim: Any, logger: logging.Logger) -> float:
    """
    Get the gateway request timeout from Neovim global variable.

    Args:
        nvim: The pynvim.Nvim instance for interacting with Neovim
        logger: Logger instance for error reporting

    Returns:
        float: Timeout in seconds for each gateway request, defaults to 10.
    """
    try:
        return float(nvim.vars.get('jupygate_request_timeout', DEFAULT_REQUEST_TIMEOUT))
    except Exception as e:
        logger.warning(f"Error getting request timeout from Neovim variable: {e}")
        return DEFAULT_REQUEST_TIMEOUT


def parse_gateways(raw: Any, logger: logging.Logger, request_timeout: float = DEFAULT_REQUEST_TIMEOUT) -> List[GatewayDescriptor]:
    """
    Turn the configured gateway list into descriptors.

    Each entry looks like ``{"name": "...", "options": {"baseUrl": "..."}}``.
    Malformed entries are skipped with a warning.

    Args:
        raw: The value of g:jupygate_gateways
        logger: Logger instance for error reporting
        request_timeout: Timeout used when an entry does not set its own

    Returns:
        List[GatewayDescriptor]: One descriptor per usable entry
    """
    if not raw:
        return []
    if not isinstance(raw, (list, tuple)):
        logger.warning(f"g:jupygate_gateways must be a list, got {type(raw).__name__}")
        return []

    gateways = []
    for index, entry in enumerate(raw):
        try:
            name = entry["name"]
            options = ConnectionOptions.from_config(entry.get("options") or {}, request_timeout)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Skipping gateway entry {index}: {e}")
            continue
        gateways.append(GatewayDescriptor(name=str(name), options=options))
    return gateways


def get_gateways(nvim: Any, logger: logging.Logger) -> List[GatewayDescriptor]:
    """
    Get the configured remote kernel gateways from Neovim global variable.

    Args:
        nvim: The pynvim.Nvim instance for interacting with Neovim
        logger: Logger instance for error reporting

    Returns:
        List[GatewayDescriptor]: The gateways, or an empty list if unset or unreadable.
    """
    try:
        raw = nvim.vars.get('jupygate_gateways', [])
    except Exception as e:
        logger.warning(f"Error getting gateways from Neovim variable: {e}")
        return []
    return parse_gateways(raw, logger, get_request_timeout(nvim, logger))
