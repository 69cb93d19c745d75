"""
Pytest configuration and shared fixtures for jupygate tests.
"""
import pytest
import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock

# Add the plugin to Python path
plugin_path = Path(__file__).parent.parent / 'rplugin' / 'python3'
sys.path.insert(0, str(plugin_path))


class FakeChooser:
    """
    Chooser double that answers each presented item set from a script.

    Each entry in ``picks`` is the label of the item to confirm, or None to
    cancel. Item sets without items (loading states) are never answered.
    """

    def __init__(self, picks=()):
        self.picks = list(picks)
        self.items = []
        self.messages = {}
        self.history = []
        self.on_confirm = None
        self.on_cancel = None
        self.previously_focused_window = None
        self.visible = False
        self.cancel_count = 0
        self.show_count = 0
        self._answered = False

    def update(self, items, **messages):
        self.items = list(items)
        self.messages = messages
        self.history.append(([item.name for item in self.items], dict(messages)))
        self._answered = False
        if self.visible:
            self._answer()

    def show(self):
        self.show_count += 1
        self.visible = True
        self._answer()

    def cancel(self):
        self.visible = False
        self.cancel_count += 1

    def destroy(self):
        self.cancel()

    def presented(self):
        """Labels of every non-empty item set shown so far."""
        return [names for names, _ in self.history if names]

    def _answer(self):
        if self._answered or not self.items or self.on_confirm is None:
            return
        self._answered = True
        pick = self.picks.pop(0)
        if pick is None:
            self.cancel()
            self.on_cancel()
            return
        matches = [item for item in self.items if item.name == pick]
        assert matches, f"{pick!r} not among {[item.name for item in self.items]}"
        self.on_confirm(matches[0])


@pytest.fixture
def fake_chooser():
    """Factory for scripted choosers: ``fake_chooser(["label", None])``."""
    return FakeChooser


@pytest.fixture
def prompter():
    """Prompter answering every prompt with 'secret'."""
    mock = Mock()
    mock.prompt = AsyncMock(return_value="secret")
    return mock


@pytest.fixture(scope="session")
def plugin_dir():
    """Path to the plugin directory."""
    return Path(__file__).parent.parent


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line(
        "markers", "requires_nvim: mark test as requiring Neovim"
    )


def pytest_report_header(config):
    """Add information about available dependencies to test report header."""
    deps = []

    try:
        import pynvim
        deps.append(f"pynvim-{getattr(pynvim, '__version__', 'unknown')}")
    except ImportError:
        deps.append("pynvim-MISSING")

    try:
        import aiohttp
        deps.append(f"aiohttp-{aiohttp.__version__}")
    except ImportError:
        deps.append("aiohttp-MISSING")

    return f"dependencies: {', '.join(deps)}"
