"""
Remote kernel picker: gateway selection, spec discovery, session listing and
kernel binding, run as an explicit state machine over one shared chooser.
"""
import enum
import logging
import uuid
from typing import Callable, Dict, FrozenSet, List, Optional

from .errors import FatalGatewayError, GatewayError, GatewayUnreachable, InvalidTransition, UserCancelled
from .gateway_resolver import CONNECTION_FAILED, GatewayResolver
from .models import DocumentContext, GatewayDescriptor, KernelSpec, ResolvedKernel
from .negotiator import CredentialNegotiator
from .session_resolver import SessionResolver
from .ui_manager import await_choice

NO_GATEWAYS_TITLE = "No remote kernel gateways available"
NO_GATEWAYS_DESCRIPTION = (
    "Set g:jupygate_gateways to the list of remote servers. jupygate can use remote kernels "
    "on either a Jupyter Kernel Gateway or a Jupyter notebook server."
)


class PickerState(enum.Enum):
    IDLE = "idle"
    GATEWAY_SELECTION = "gateway_selection"
    SPEC_DISCOVERY = "spec_discovery"
    SESSION_LISTING = "session_listing"
    KERNEL_SELECTION = "kernel_selection"
    CONNECTING = "connecting"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


TERMINAL_STATES = frozenset({PickerState.DONE, PickerState.CANCELLED, PickerState.FAILED})

TRANSITIONS: Dict[PickerState, FrozenSet[PickerState]] = {
    PickerState.IDLE: frozenset({PickerState.GATEWAY_SELECTION}),
    PickerState.GATEWAY_SELECTION: frozenset({PickerState.SPEC_DISCOVERY, PickerState.CANCELLED}),
    PickerState.SPEC_DISCOVERY: frozenset(
        {PickerState.SESSION_LISTING, PickerState.CANCELLED, PickerState.FAILED}
    ),
    PickerState.SESSION_LISTING: frozenset(
        {PickerState.KERNEL_SELECTION, PickerState.CONNECTING, PickerState.CANCELLED, PickerState.FAILED}
    ),
    PickerState.KERNEL_SELECTION: frozenset(
        {PickerState.CONNECTING, PickerState.CANCELLED, PickerState.FAILED}
    ),
    PickerState.CONNECTING: frozenset({PickerState.DONE, PickerState.CANCELLED, PickerState.FAILED}),
    PickerState.DONE: frozenset({PickerState.IDLE}),
    PickerState.CANCELLED: frozenset({PickerState.IDLE}),
    PickerState.FAILED: frozenset({PickerState.IDLE}),
}


def language_filter(language: Optional[str]) -> Callable[[KernelSpec], bool]:
    """Predicate keeping kernel specs for ``language``; every spec passes when it is empty."""
    if not language:
        return lambda spec: True
    wanted = language.lower()
    return lambda spec: (spec.language or "").lower() == wanted


class KernelPicker:
    """
    Drives one remote kernel resolution at a time.

    Collaborators are injected so the state machine runs without Neovim:
    the chooser and prompter are the UI, ``client`` talks to gateways,
    ``list_gateways`` reads configuration, ``report_failure(title, description)``
    surfaces errors and ``get_document_context`` describes the active buffer.
    """

    def __init__(
        self,
        on_chosen: Callable[[ResolvedKernel], None],
        chooser,
        prompter,
        client,
        list_gateways: Callable[[], List[GatewayDescriptor]],
        report_failure: Callable[..., None],
        get_document_context: Callable[[], Optional[DocumentContext]],
    ):
        self.on_chosen = on_chosen
        self.chooser = chooser
        self.client = client
        self.list_gateways = list_gateways
        self.report_failure = report_failure
        self.get_document_context = get_document_context
        self.state = PickerState.IDLE
        self.session_path: Optional[str] = None
        self.context: Optional[DocumentContext] = None
        self.negotiator = CredentialNegotiator(chooser, prompter)
        self.gateway_resolver = GatewayResolver(client, self.negotiator, chooser, report_failure)
        self.session_resolver = SessionResolver(client, chooser, on_state=self._on_resolver_state)
        self._logger = logging.getLogger("jupygate.picker")

    @property
    def active(self) -> bool:
        return self.state not in TERMINAL_STATES and self.state is not PickerState.IDLE

    def transition(self, new_state: PickerState):
        if new_state not in TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.state.value} -> {new_state.value}")
        self._logger.debug(f"Picker state {self.state.value} -> {new_state.value}")
        self.state = new_state

    def _on_resolver_state(self, name: str):
        target = PickerState(name)
        if self.state is not target:
            self.transition(target)

    async def toggle(
        self, spec_filter: Callable[[KernelSpec], bool], context: Optional[DocumentContext] = None
    ) -> Optional[ResolvedKernel]:
        """
        Run one resolution.

        The document context is captured once, from ``context`` or else from
        ``get_document_context``, and held for the whole resolution.

        Returns:
            The ResolvedKernel handed to ``on_chosen``, or None if the user
            cancelled or the resolution failed.
        """
        if self.active:
            self._logger.info(f"Picker already active ({self.state.value}); ignoring toggle")
            return None
        if self.state in TERMINAL_STATES:
            self.transition(PickerState.IDLE)

        gateways = list(self.list_gateways() or [])
        if not gateways:
            self._logger.warning("No gateways configured")
            self.report_failure(NO_GATEWAYS_TITLE, NO_GATEWAYS_DESCRIPTION)
            return None

        self.context = context if context is not None else self.get_document_context()
        self.session_path = f"{(self.context.path if self.context else None) or 'unsaved'}-{uuid.uuid4()}"
        self.transition(PickerState.GATEWAY_SELECTION)

        try:
            gateway = await await_choice(
                self.chooser,
                gateways,
                info_message="Select a gateway",
                empty_message="No gateways available",
                loading_message=None,
            )
            self._logger.info(f"Gateway {gateway.name} selected")

            self.transition(PickerState.SPEC_DISCOVERY)
            resolution = await self.gateway_resolver.resolve(gateway, spec_filter)

            self.transition(PickerState.SESSION_LISTING)
            session = await self.session_resolver.resolve_session(
                resolution.options, resolution.kernel_specs, self.session_path
            )
            kernel = await self._on_session_chosen(gateway.name, session)

        except UserCancelled:
            self._logger.info("Kernel selection cancelled")
            self.chooser.cancel()
            self.transition(PickerState.CANCELLED)
            return None
        except GatewayUnreachable as e:
            self._logger.warning(f"Gateway unreachable: {e}")
            self.transition(PickerState.FAILED)
            return None
        except (FatalGatewayError, GatewayError) as e:
            self._logger.error(f"Gateway resolution failed: {e!r}")
            self.report_failure(CONNECTION_FAILED)
            self.chooser.cancel()
            self.transition(PickerState.FAILED)
            return None
        except Exception:
            self.chooser.cancel()
            self.state = PickerState.FAILED
            raise

        if kernel is not None:
            try:
                self.on_chosen(kernel)
            except Exception:
                self._logger.error("on_chosen failed; closing the resolved session")
                await kernel.session.close()
                raise
        return kernel

    async def _on_session_chosen(self, gateway_name: str, session) -> Optional[ResolvedKernel]:
        self.chooser.cancel()
        if self.state is not PickerState.CONNECTING:
            self.transition(PickerState.CONNECTING)
        try:
            kernel_spec = await session.get_kernel_spec()
        except BaseException:
            await session.close()
            raise

        context = self.context
        if context is None or not context.language:
            self._logger.info("No document language to bind the kernel to; dropping session")
            await session.close()
            self.transition(PickerState.CANCELLED)
            return None

        kernel = ResolvedKernel(
            gateway_name=gateway_name,
            kernel_spec=kernel_spec,
            session=session,
            language=context.language,
        )
        self.transition(PickerState.DONE)
        self._logger.info(f"Resolved {kernel_spec.name} on {gateway_name} (session {session.id})")
        return kernel
