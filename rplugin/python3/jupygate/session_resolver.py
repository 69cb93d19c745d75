"""
Session selection on a gateway whose kernel specs are already known.
"""
import logging
import os
from typing import Callable, List, Optional, Sequence

from .errors import FailureKind, FatalGatewayError, GatewayError
from .models import (
    BoundSession,
    ConnectionOptions,
    KernelChoice,
    KernelSpec,
    SessionDescriptor,
    SessionModel,
    UnboundSession,
)
from .ui_manager import await_choice

NEW_SESSION_LABEL = "[new session]"
LISTING_FORBIDDEN_MESSAGE = "This gateway does not support listing sessions"


def tildify(path: str, home: Optional[str] = None) -> str:
    """Shorten ``path`` by replacing the home directory prefix with ``~``."""
    home = (home if home is not None else os.path.expanduser("~")).rstrip(os.sep)
    if not home:
        return path
    if path == home:
        return "~"
    if path.startswith(home + os.sep):
        return "~" + path[len(home):]
    return path


def session_label(model: SessionModel, home: Optional[str] = None) -> str:
    if model.path:
        return tildify(model.path, home)
    if model.notebook_path:
        return tildify(model.notebook_path, home)
    return f"Session {model.id}"


def filter_sessions(sessions: Sequence[SessionModel], kernel_specs: Sequence[KernelSpec]) -> List[SessionModel]:
    """Keep sessions running one of ``kernel_specs``; sessions with no known kernel are kept too."""
    names = {spec.name for spec in kernel_specs}
    return [model for model in sessions if model.kernel_name is None or model.kernel_name in names]


def build_session_choices(
    sessions: Sequence[SessionModel],
    kernel_specs: Sequence[KernelSpec],
    options: ConnectionOptions,
    home: Optional[str] = None,
) -> List[SessionDescriptor]:
    """The new-session entry followed by one entry per matching running session."""
    choices: List[SessionDescriptor] = [UnboundSession(NEW_SESSION_LABEL, tuple(kernel_specs), options)]
    for model in filter_sessions(sessions, kernel_specs):
        choices.append(BoundSession(session_label(model, home), model, options))
    return choices


class SessionResolver:
    """
    Lists sessions, lets the user attach to one or start a new one, and
    returns the live RemoteSession.
    """

    def __init__(self, client, chooser, on_state: Optional[Callable[[str], None]] = None):
        """
        Args:
            client: The gateway client
            chooser: The chooser shared with the picker
            on_state: Called with "kernel_selection" or "connecting" as the
                resolution advances
        """
        self.client = client
        self.chooser = chooser
        self.on_state = on_state
        self._logger = logging.getLogger("jupygate.session_resolver")

    def _advance(self, state: str):
        if self.on_state:
            self.on_state(state)

    async def resolve_session(
        self, options: ConnectionOptions, kernel_specs: Sequence[KernelSpec], session_path: str
    ):
        """
        Resolve to exactly one live session.

        Args:
            options: Options that worked for kernel-spec discovery
            kernel_specs: The filtered kernel specs
            session_path: Unique path for a new session

        Raises:
            UserCancelled: The user dismissed a choice
            FatalGatewayError: Listing failed for a reason other than 403
            GatewayError: Attaching to or starting a session failed
        """
        try:
            sessions = await self.client.list_sessions(options)
        except GatewayError as e:
            if e.kind is not FailureKind.PERMISSION_DENIED:
                self._logger.error(f"Listing sessions failed: {e!r}")
                raise FatalGatewayError("Listing sessions failed", e) from e
            # Gateways may refuse to enumerate sessions; go straight to creating one.
            self._logger.info("Gateway forbids listing sessions; offering a new session")
            descriptor = UnboundSession(NEW_SESSION_LABEL, tuple(kernel_specs), options)
            return await self._start_new(descriptor, session_path, listing_forbidden=True)

        choices = build_session_choices(sessions, kernel_specs, options)
        self._logger.info(f"Offering {len(choices) - 1} running sessions plus a new session")
        descriptor = await await_choice(self.chooser, choices, loading_message=None)
        return await self.bind(descriptor, session_path)

    async def bind(self, descriptor: SessionDescriptor, session_path: str):
        """Attach or create according to the descriptor's shape."""
        if isinstance(descriptor, BoundSession):
            self._advance("connecting")
            self._logger.info(f"Attaching to session {descriptor.model.id}")
            return await self.client.connect_to_session(descriptor.model.id, descriptor.options)
        if isinstance(descriptor, UnboundSession):
            return await self._start_new(descriptor, session_path)
        raise TypeError(f"Unknown session descriptor {descriptor!r}")

    async def _start_new(self, descriptor: UnboundSession, session_path: str, listing_forbidden: bool = False):
        self._advance("kernel_selection")
        items = [
            KernelChoice(name=spec.display_name, spec=spec, options=descriptor.options, path=session_path)
            for spec in descriptor.kernel_specs
        ]
        choice = await await_choice(
            self.chooser,
            items,
            empty_message="No kernel specs available",
            info_message="Select a session",
            loading_message=None,
            error_message=LISTING_FORBIDDEN_MESSAGE if listing_forbidden else None,
        )
        self._advance("connecting")
        self._logger.info(f"Starting new {choice.spec.name} session at {choice.path}")
        return await self.client.start_session(choice.options, choice.spec.name, choice.path)
