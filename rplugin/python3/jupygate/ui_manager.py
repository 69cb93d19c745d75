import asyncio
import logging
from typing import Any, Callable, List, Optional, Sequence

import pynvim

from .errors import UserCancelled


class NvimChooser:
    """
    A select list rendered as a numbered list read back with ``input()``.

    The picker and its helpers share one instance. They replace the item set
    with update(), set on_confirm/on_cancel, and call show(). Items are any
    objects with a ``name`` attribute.
    """

    def __init__(self, nvim):
        """
        Initialize the chooser.

        Args:
            nvim: The pynvim.Nvim instance for interacting with Neovim.
        """
        self.nvim = nvim
        self.items: List[Any] = []
        self.info_message: Optional[str] = None
        self.loading_message: Optional[str] = None
        self.empty_message: Optional[str] = None
        self.error_message: Optional[str] = None
        self.on_confirm: Optional[Callable[[Any], None]] = None
        self.on_cancel: Optional[Callable[[], None]] = None
        self.previously_focused_window = None
        self.visible = False
        self._render_pending = False
        self._logger = logging.getLogger("jupygate.chooser")

    def update(
        self,
        items: Sequence[Any],
        info_message: Optional[str] = None,
        loading_message: Optional[str] = None,
        empty_message: Optional[str] = None,
        error_message: Optional[str] = None,
    ):
        """Replace the item set and status messages, re-rendering if shown."""
        self.items = list(items)
        self.info_message = info_message
        self.loading_message = loading_message
        self.empty_message = empty_message
        self.error_message = error_message
        if self.visible:
            self._schedule_render()

    def show(self):
        if self.previously_focused_window is None:
            try:
                self.previously_focused_window = self.nvim.current.window
            except (AttributeError, pynvim.api.NvimError):
                self.previously_focused_window = None
        if self.visible:
            # update() already re-rendered the current item set
            return
        self.visible = True
        self._schedule_render()

    def cancel(self):
        """Dismiss the list and return focus to where it was before show()."""
        self.visible = False
        window = self.previously_focused_window
        self.previously_focused_window = None
        if window is not None:
            try:
                if window.valid:
                    self.nvim.current.window = window
            except (AttributeError, pynvim.api.NvimError) as e:
                self._logger.debug(f"Could not restore focus: {e}")

    def destroy(self):
        self.cancel()
        self.items = []
        self.on_confirm = None
        self.on_cancel = None

    def _schedule_render(self):
        # At most one render queued; it draws whatever state is current when it runs
        if self._render_pending:
            return
        self._render_pending = True
        self.nvim.async_call(self._render)

    def _render(self):
        """Show status lines and, when there are items, read a selection."""
        self._render_pending = False
        if not self.visible:
            return
        if self.error_message:
            self.nvim.err_write(self.error_message + "\n")
        if not self.items:
            message = self.loading_message or self.empty_message
            if message:
                self.nvim.out_write(message + "\n")
            return

        lines = [f"{i}. {item.name}" for i, item in enumerate(self.items, 1)]
        header = self.info_message or "Choose an option"
        prompt = f"{header}:\n" + "\n".join(lines) + f"\nEnter number (1-{len(self.items)}): "
        items = self.items

        try:
            response = self.nvim.call("input", prompt)
        except (pynvim.api.NvimError, KeyboardInterrupt) as e:
            self._logger.info(f"Selection aborted: {e}")
            response = None

        if items is not self.items or not self.visible:
            # The item set changed while waiting; the newer render handles it.
            return

        selected = None
        if response is not None and str(response).strip():
            try:
                index = int(str(response).strip())
                if 1 <= index <= len(items):
                    selected = items[index - 1]
            except ValueError:
                self._logger.info(f"Invalid selection {response!r}")

        if selected is None:
            self.cancel()
            if self.on_cancel:
                self.on_cancel()
        elif self.on_confirm:
            self.on_confirm(selected)


class NvimPrompter:
    """Collects free text through Neovim's ``input()``."""

    def __init__(self, nvim):
        self.nvim = nvim

    async def prompt(self, label: str) -> Optional[str]:
        """
        Ask for a line of text.

        Returns:
            The entered text, or None if the prompt was cancelled or left empty.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def ask():
            try:
                answer = self.nvim.call("input", label + " ")
            except (pynvim.api.NvimError, KeyboardInterrupt):
                answer = None
            if not future.done():
                future.set_result(answer)

        self.nvim.async_call(ask)
        answer = await future
        if answer is None or answer == "":
            return None
        return answer


async def await_choice(chooser, items: Sequence[Any], **messages) -> Any:
    """
    Show ``items`` on ``chooser`` and wait for the user's pick.

    Raises:
        UserCancelled: If the chooser was cancelled
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def confirm(item):
        if not future.done():
            future.set_result(item)

    def cancel():
        if not future.done():
            future.set_exception(UserCancelled())

    chooser.on_confirm = confirm
    chooser.on_cancel = cancel
    chooser.update(items, **messages)
    chooser.show()
    try:
        return await future
    finally:
        chooser.on_confirm = None
        chooser.on_cancel = None
