"""
Command modules for jupygate plugin.

This package contains command handlers organized by functionality:
- connection.py: Connecting buffers to remote kernels and disconnecting them
- debug.py: Status and diagnostic commands
"""
