"""
Unit tests for the main JupyGate plugin class and its command implementations.
"""
import pytest
import sys
import os
from unittest.mock import Mock, AsyncMock, patch

# Add the plugin to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'rplugin', 'python3'))

from jupygate import JupyGate
from jupygate.commands.connection import connect_command_impl, disconnect_command_impl, get_document_context
from jupygate.commands.debug import debug_command_impl, status_command_impl
from jupygate.models import DocumentContext, KernelSpec, ResolvedKernel
from jupygate.picker import PickerState


class MockBuffer(list):
    """Mock buffer that behaves like a list."""

    def __init__(self, lines, number=1, name="test.py", filetype="python"):
        super().__init__(lines)
        self.number = number
        self.name = name
        self.options = {"filetype": filetype}


class MockNvim:
    """Mock Neovim instance for testing."""

    def __init__(self, gateways=None):
        self.current = Mock()
        self.current.buffer = MockBuffer(["print(1)"], 1, "/work/test.py")
        self.current.window = Mock()
        self.output_messages = []
        self.error_messages = []
        self.commands = []
        values = {"jupygate_gateways": gateways or []}
        self.vars = Mock()
        self.vars.get = Mock(side_effect=lambda key, default=None: values.get(key, default))

    def out_write(self, message):
        self.output_messages.append(message)

    def err_write(self, message):
        self.error_messages.append(message)

    def async_call(self, func):
        """Mock async call - just execute the function."""
        return func()

    def command(self, cmd):
        self.commands.append(cmd)


def make_kernel():
    session = Mock()
    session.id = "session-0001"
    session.channel = None
    session.open_channel = AsyncMock()
    session.close = AsyncMock()
    return ResolvedKernel("local", KernelSpec("python3", "Python 3", "python"), session, "python")


class TestJupyGatePlugin:
    """Test cases for the main JupyGate plugin class."""

    def setup_method(self):
        self.mock_nvim = MockNvim()

    def test_initialization(self):
        plugin = JupyGate(self.mock_nvim)
        assert plugin.nvim is self.mock_nvim
        assert plugin.picker.state is PickerState.IDLE
        assert plugin.picker.chooser is plugin.chooser
        assert plugin.registry.kernels == {}

    def test_get_document_context(self):
        context = get_document_context(self.mock_nvim, Mock())
        assert context == DocumentContext(path="/work/test.py", language="python")

    def test_get_document_context_unsaved_buffer(self):
        self.mock_nvim.current.buffer = MockBuffer([], 2, "", "")
        context = get_document_context(self.mock_nvim, Mock())
        assert context == DocumentContext(path=None, language=None)

    @pytest.mark.asyncio
    async def test_connect_without_gateways_reports_failure(self):
        plugin = JupyGate(self.mock_nvim)
        result = await connect_command_impl(plugin, 1, DocumentContext("/work/test.py", "python"))

        assert result is None
        assert any("No remote kernel gateways available" in cmd for cmd in self.mock_nvim.commands)

    @pytest.mark.asyncio
    async def test_connect_registers_and_opens_channel(self):
        plugin = JupyGate(self.mock_nvim)
        kernel = make_kernel()

        with patch.object(plugin.picker, 'toggle', new=AsyncMock(return_value=kernel)) as mock_toggle:
            result = await connect_command_impl(plugin, 4, DocumentContext("/work/test.py", "python"))

        assert result is kernel
        mock_toggle.assert_awaited_once()
        spec_filter = mock_toggle.await_args.args[0]
        assert spec_filter(KernelSpec("python3", "Python 3", "python"))
        assert not spec_filter(KernelSpec("ir", "R", "R"))
        assert plugin.registry.get(4) is kernel
        kernel.session.open_channel.assert_awaited_once()
        assert plugin.pending_context.language == "python"
        assert mock_toggle.await_args.args[1] == DocumentContext("/work/test.py", "python")

    @pytest.mark.asyncio
    async def test_connect_while_picker_busy_keeps_running_context(self):
        plugin = JupyGate(self.mock_nvim)
        first = DocumentContext("/work/a.py", "python")
        plugin.pending_context = first
        plugin.pending_bnum = 1
        plugin.picker.context = first
        plugin.picker.state = PickerState.SESSION_LISTING

        with patch.object(plugin.picker, 'toggle', new=AsyncMock()) as mock_toggle:
            result = await connect_command_impl(plugin, 2, DocumentContext("/work/b.R", "r"))

        assert result is None
        mock_toggle.assert_not_awaited()
        assert plugin.pending_context is first
        assert plugin.pending_bnum == 1
        assert plugin.picker.context is first

    def test_on_kernel_chosen_notifies(self):
        plugin = JupyGate(self.mock_nvim)
        plugin._on_kernel_chosen(make_kernel())
        assert self.mock_nvim.output_messages == ["Connected to Python 3 on local\n"]

    @pytest.mark.asyncio
    async def test_disconnect(self):
        plugin = JupyGate(self.mock_nvim)
        kernel = make_kernel()
        await plugin.registry.register(1, kernel)

        assert await disconnect_command_impl(plugin, 1) is True
        kernel.session.close.assert_awaited_once()
        assert self.mock_nvim.output_messages == ["Remote kernel disconnected\n"]

    @pytest.mark.asyncio
    async def test_disconnect_without_kernel(self):
        plugin = JupyGate(self.mock_nvim)
        assert await disconnect_command_impl(plugin, 1) is False
        assert self.mock_nvim.error_messages == ["No remote kernel connected to this buffer\n"]

    @pytest.mark.asyncio
    async def test_status_lists_connected_kernels(self):
        plugin = JupyGate(self.mock_nvim)
        await plugin.registry.register(1, make_kernel())

        status_command_impl(plugin)

        output = "".join(self.mock_nvim.output_messages)
        assert "Remote Kernels: 1 connected" in output
        assert "buffer 1: Python 3 on local (session session-, channel closed)" in output

    def test_debug_shows_gateways(self):
        nvim = MockNvim(gateways=[{"name": "Local", "options": {"baseUrl": "http://localhost:8888"}}])
        plugin = JupyGate(nvim)

        debug_command_impl(plugin)

        output = "".join(nvim.output_messages)
        assert "1 gateways configured" in output
        assert "Local: http://localhost:8888 (auth: none)" in output

    @pytest.mark.asyncio
    async def test_async_cleanup_closes_sessions(self):
        plugin = JupyGate(self.mock_nvim)
        kernel = make_kernel()
        await plugin.registry.register(1, kernel)

        await plugin._async_cleanup()

        kernel.session.close.assert_awaited_once()
        assert plugin.registry.kernels == {}
