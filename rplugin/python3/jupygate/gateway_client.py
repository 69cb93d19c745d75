"""
aiohttp client for the Jupyter server REST API exposed by kernel gateways.

Every failure leaving this module is a GatewayError whose FailureKind was
assigned here, once, by classify_failure(). Callers never look inside aiohttp
exceptions or response bodies themselves.
"""
import asyncio
import json
import logging
import uuid
from typing import Any, List, Optional
from urllib.parse import quote

import aiohttp

from .errors import FailureKind, GatewayError
from .models import ConnectionOptions, KernelSpec, SessionModel

TIMEOUT_MARKER = "ETIMEDOUT"
TIMEOUT_STATUSES = (408, 504)


def classify_failure(
    error: Optional[BaseException] = None, status: Optional[int] = None, text: Optional[str] = None
) -> FailureKind:
    """
    Decide what kind of failure a gateway call produced.

    Args:
        error: The exception raised by aiohttp, if any
        status: HTTP status of the response, if one was received
        text: Response body or error text, if any

    Returns:
        FailureKind: TIMEOUT for explicit timeouts, PERMISSION_DENIED for 403,
        STRUCTURED for other HTTP errors that carry a body and for
        refused/reset connections (these are indistinguishable from bad
        credentials), TRANSPORT otherwise. An HTTP error with an empty body
        carries nothing to negotiate against, so it is TRANSPORT.
    """
    if text and TIMEOUT_MARKER in text:
        return FailureKind.TIMEOUT
    if isinstance(error, asyncio.TimeoutError):
        return FailureKind.TIMEOUT
    if error is not None and TIMEOUT_MARKER in str(error):
        return FailureKind.TIMEOUT
    if status is not None:
        if status == 403:
            return FailureKind.PERMISSION_DENIED
        if status in TIMEOUT_STATUSES:
            return FailureKind.TIMEOUT
        if status >= 400:
            if not (text or "").strip():
                return FailureKind.TRANSPORT
            return FailureKind.STRUCTURED
    if isinstance(error, aiohttp.ClientConnectionError):
        return FailureKind.STRUCTURED
    return FailureKind.TRANSPORT


def _open_http(options: ConnectionOptions) -> aiohttp.ClientSession:
    factory = options.http_factory or options.with_defaults().http_factory
    return factory(options.headers(), options.request_timeout)


async def _request(http: aiohttp.ClientSession, method: str, url: str, **kwargs) -> Any:
    """Perform one REST call and decode its JSON body, classifying any failure."""
    try:
        async with http.request(method, url, **kwargs) as response:
            text = await response.text()
            if response.status >= 400:
                raise GatewayError(
                    f"{method} {url} returned HTTP {response.status}",
                    classify_failure(status=response.status, text=text),
                    status=response.status,
                    payload=text,
                )
            if not text:
                return None
            try:
                return json.loads(text)
            except ValueError as e:
                raise GatewayError(
                    f"{method} {url} returned a non-JSON body",
                    FailureKind.TRANSPORT,
                    status=response.status,
                    payload=text,
                ) from e
    except GatewayError:
        raise
    except (asyncio.TimeoutError, aiohttp.ClientError) as e:
        raise GatewayError(f"{method} {url} failed: {e}", classify_failure(e), payload=str(e)) from e


class RemoteSession:
    """
    A live session on a gateway, bound to exactly one kernel.

    Owns the HTTP client session it was created with and, once opened, the
    kernel channel WebSocket.
    """

    def __init__(self, model: SessionModel, options: ConnectionOptions, http: aiohttp.ClientSession):
        self.model = model
        self.options = options
        self.channel = None
        self.client_session_id = uuid.uuid4().hex
        self._http = http
        self._logger = logging.getLogger(f"jupygate.session.{model.id[:8]}")

    @property
    def id(self) -> str:
        return self.model.id

    @property
    def kernel_id(self) -> Optional[str]:
        return self.model.kernel_id

    @property
    def kernel_name(self) -> Optional[str]:
        return self.model.kernel_name

    @property
    def closed(self) -> bool:
        return self._http.closed

    async def get_kernel_spec(self) -> KernelSpec:
        """Fetch the spec of the kernel this session runs."""
        if not self.kernel_name:
            raise GatewayError(f"Session {self.id} has no kernel", FailureKind.TRANSPORT)
        body = await _request(self._http, "GET", self.options.api_url("kernelspecs", quote(self.kernel_name)))
        try:
            return KernelSpec.from_model(body)
        except (KeyError, TypeError, AttributeError) as e:
            raise GatewayError("Unexpected kernel spec payload", FailureKind.TRANSPORT, payload=body) from e

    def channel_url(self) -> str:
        return (
            f"{self.options.channel_base_url()}/api/kernels/{quote(self.kernel_id or '')}/channels"
            f"?session_id={self.client_session_id}"
        )

    async def open_channel(self):
        """Open the kernel channel WebSocket using the options' WebSocket factory."""
        if self.channel is not None and not self.channel.closed:
            return self.channel
        if not self.kernel_id:
            raise GatewayError(f"Session {self.id} has no kernel", FailureKind.TRANSPORT)
        factory = self.options.ws_factory or self.options.with_defaults().ws_factory
        try:
            self.channel = await factory(self._http, self.channel_url(), ())
        except (asyncio.TimeoutError, aiohttp.ClientError) as e:
            raise GatewayError(f"Opening kernel channel failed: {e}", classify_failure(e), payload=str(e)) from e
        self._logger.info(f"Opened channel for kernel {self.kernel_id[:8]}")
        return self.channel

    async def close(self):
        """Close the channel and HTTP session. The remote session keeps running."""
        if self.channel is not None and not self.channel.closed:
            try:
                await self.channel.close()
            except Exception as e:
                self._logger.warning(f"Error closing channel for session {self.id[:8]}: {e}")
        self.channel = None
        if not self._http.closed:
            await self._http.close()

    async def shutdown(self):
        """Delete the session on the gateway, then close local resources."""
        try:
            await _request(self._http, "DELETE", self.options.api_url("sessions", quote(self.id)))
            self._logger.info(f"Session {self.id[:8]} deleted on gateway")
        finally:
            await self.close()


class GatewayClient:
    """Stateless client; every call takes the ConnectionOptions to use."""

    def __init__(self):
        self._logger = logging.getLogger("jupygate.gateway_client")

    async def get_kernel_specs(self, options: ConnectionOptions) -> List[KernelSpec]:
        """
        List the kernel specs the gateway offers.

        Raises:
            GatewayError: With the failure already classified
        """
        async with _open_http(options) as http:
            body = await _request(http, "GET", options.api_url("kernelspecs"))
        try:
            specs = [KernelSpec.from_model(model) for model in body["kernelspecs"].values()]
        except (KeyError, TypeError, AttributeError) as e:
            raise GatewayError("Unexpected kernel specs payload", FailureKind.TRANSPORT, payload=body) from e
        self._logger.info(f"Gateway {options.base_url} offers {len(specs)} kernel specs")
        return specs

    async def list_sessions(self, options: ConnectionOptions) -> List[SessionModel]:
        """List running sessions. Gateways that forbid listing answer 403."""
        async with _open_http(options) as http:
            body = await _request(http, "GET", options.api_url("sessions"))
        try:
            sessions = [SessionModel.from_model(model) for model in body]
        except (KeyError, TypeError, AttributeError) as e:
            raise GatewayError("Unexpected sessions payload", FailureKind.TRANSPORT, payload=body) from e
        self._logger.info(f"Gateway {options.base_url} has {len(sessions)} running sessions")
        return sessions

    async def connect_to_session(self, session_id: str, options: ConnectionOptions) -> RemoteSession:
        """Attach to an existing session by id."""
        http = _open_http(options)
        try:
            body = await _request(http, "GET", options.api_url("sessions", quote(session_id)))
            model = SessionModel.from_model(body)
        except (KeyError, TypeError, AttributeError) as e:
            await http.close()
            raise GatewayError("Unexpected session payload", FailureKind.TRANSPORT) from e
        except BaseException:
            await http.close()
            raise
        self._logger.info(f"Attached to session {model.id[:8]} (kernel: {model.kernel_name})")
        return RemoteSession(model, options, http)

    async def start_session(self, options: ConnectionOptions, kernel_name: str, path: str) -> RemoteSession:
        """Start a new session running ``kernel_name`` at ``path``."""
        http = _open_http(options)
        payload = {"path": path, "name": path, "type": "notebook", "kernel": {"name": kernel_name}}
        try:
            body = await _request(http, "POST", options.api_url("sessions"), json=payload)
            model = SessionModel.from_model(body)
        except (KeyError, TypeError, AttributeError) as e:
            await http.close()
            raise GatewayError("Unexpected session payload", FailureKind.TRANSPORT) from e
        except BaseException:
            await http.close()
            raise
        self._logger.info(f"Started session {model.id[:8]} (kernel: {kernel_name}, path: {path})")
        return RemoteSession(model, options, http)
