"""
Kernel-spec discovery against one gateway, with one round of credential
negotiation when the failure might be an authorization problem.
"""
import logging
from typing import Callable

from .errors import FailureKind, FatalGatewayError, GatewayError, GatewayUnreachable, UserCancelled
from .models import ConnectionOptions, GatewayDescriptor, GatewayResolution, KernelSpec
from .negotiator import NegotiationOutcome

CONNECTION_FAILED = "Connection to gateway failed"


class GatewayResolver:
    """
    Turns a gateway descriptor into working options plus its kernel specs.

    Transport failures without a response are re-raised untouched. A timeout
    is reported and ends the attempt. Any other failure may be bad
    credentials: the user is offered one negotiation round and the discovery
    call is retried exactly once.
    """

    def __init__(self, client, negotiator, chooser, report_failure: Callable[..., None]):
        self.client = client
        self.negotiator = negotiator
        self.chooser = chooser
        self.report_failure = report_failure
        self._logger = logging.getLogger("jupygate.gateway_resolver")

    def _show_loading(self):
        self.chooser.update(
            [],
            info_message=None,
            loading_message="Loading sessions...",
            empty_message="No sessions available",
        )

    async def resolve(self, descriptor: GatewayDescriptor, spec_filter: Callable[[KernelSpec], bool]) -> GatewayResolution:
        """
        Discover kernel specs on ``descriptor``'s gateway.

        Args:
            descriptor: The gateway the user picked
            spec_filter: Predicate selecting usable kernel specs

        Returns:
            GatewayResolution: The options that worked and the filtered specs

        Raises:
            UserCancelled: The user declined to supply credentials
            GatewayUnreachable: The gateway timed out (already reported)
            FatalGatewayError: The retry after negotiation failed as well
            GatewayError: TRANSPORT-kind failures, unchanged
        """
        self._show_loading()
        options = descriptor.options.with_defaults()

        try:
            specs = await self.client.get_kernel_specs(options)
        except GatewayError as e:
            options = await self._recover(descriptor, options, e)
            self._show_loading()
            try:
                specs = await self.client.get_kernel_specs(options)
            except GatewayError as retry_error:
                self._logger.error(f"Gateway {descriptor.name} still failing after credentials: {retry_error!r}")
                raise FatalGatewayError(CONNECTION_FAILED, retry_error) from retry_error

        kernel_specs = [spec for spec in specs if spec_filter(spec)]
        self._logger.info(
            f"Gateway {descriptor.name}: {len(kernel_specs)} of {len(specs)} kernel specs match the filter"
        )
        return GatewayResolution(options=options, kernel_specs=kernel_specs)

    async def _recover(self, descriptor: GatewayDescriptor, options: ConnectionOptions, error: GatewayError) -> ConnectionOptions:
        """Classify a discovery failure and return the options to retry with."""
        if error.kind is FailureKind.TRANSPORT:
            raise error

        if error.kind is FailureKind.TIMEOUT:
            self._logger.warning(f"Gateway {descriptor.name} timed out: {error!r}")
            self.report_failure(CONNECTION_FAILED)
            self.chooser.cancel()
            raise GatewayUnreachable(f"Gateway {descriptor.name} timed out") from error

        self._logger.info(f"Gateway {descriptor.name} rejected discovery ({error!r}); asking for credentials")
        outcome, options = await self.negotiator.negotiate(options)
        if outcome is NegotiationOutcome.CANCELLED:
            raise UserCancelled()
        self._logger.info(f"Retrying gateway {descriptor.name} after {outcome.value}")
        return options
