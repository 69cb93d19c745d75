"""
Data model for gateway discovery and session resolution.

ConnectionOptions is an immutable builder: every negotiation step returns a new
value and only ever adds authentication material. SessionDescriptor is a sum
of BoundSession and UnboundSession, dispatched on the class.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from .transport import (
    cookie_http_factory,
    cookie_ws_factory,
    default_http_factory,
    default_ws_factory,
)

DEFAULT_REQUEST_TIMEOUT = 10.0


@dataclass(frozen=True)
class ConnectionOptions:
    """How to reach one gateway."""

    base_url: str
    token: Optional[str] = None
    request_headers: Mapping[str, str] = field(default_factory=dict)
    ws_url: Optional[str] = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    http_factory: Optional[Callable] = None
    ws_factory: Optional[Callable] = None

    @classmethod
    def from_config(cls, raw: Mapping[str, Any], request_timeout: float = DEFAULT_REQUEST_TIMEOUT) -> "ConnectionOptions":
        """
        Build options from a gateway's ``options`` table.

        Both camelCase keys (``baseUrl``, ``wsUrl``, ``requestHeaders``) and
        snake_case keys are accepted.

        Raises:
            ValueError: If no base URL is given
        """
        base_url = raw.get("baseUrl") or raw.get("base_url")
        if not base_url:
            raise ValueError("gateway options require a baseUrl")
        headers = raw.get("requestHeaders") or raw.get("request_headers") or {}
        return cls(
            base_url=str(base_url),
            token=raw.get("token") or None,
            request_headers={str(k): str(v) for k, v in dict(headers).items()},
            ws_url=raw.get("wsUrl") or raw.get("ws_url") or None,
            request_timeout=float(raw.get("timeout", request_timeout)),
        )

    def with_defaults(self) -> "ConnectionOptions":
        """Fill in default transport factories where none were supplied."""
        return replace(
            self,
            http_factory=self.http_factory or default_http_factory,
            ws_factory=self.ws_factory or default_ws_factory,
        )

    def with_token(self, token: str) -> "ConnectionOptions":
        return replace(self, token=token)

    def with_cookie(self, cookie: str) -> "ConnectionOptions":
        """Attach ``cookie`` to every request and make the channel handshake same-origin."""
        headers = dict(self.request_headers)
        headers["Cookie"] = cookie
        return replace(
            self,
            request_headers=headers,
            http_factory=cookie_http_factory(cookie),
            ws_factory=cookie_ws_factory(cookie),
        )

    def headers(self) -> Dict[str, str]:
        """Request headers including the token authorization, if any."""
        headers = dict(self.request_headers)
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def api_url(self, *parts: str) -> str:
        return "/".join([self.base_url.rstrip("/"), "api", *parts])

    def channel_base_url(self) -> str:
        """Base URL for WebSocket connections, derived from base_url unless wsUrl is set."""
        if self.ws_url:
            return self.ws_url.rstrip("/")
        base = self.base_url.rstrip("/")
        if base.startswith("https://"):
            return "wss://" + base[len("https://"):]
        if base.startswith("http://"):
            return "ws://" + base[len("http://"):]
        return base


@dataclass(frozen=True)
class GatewayDescriptor:
    """One configured gateway."""

    name: str
    options: ConnectionOptions


@dataclass(frozen=True)
class KernelSpec:
    """One kernel type offered by a gateway."""

    name: str
    display_name: str
    language: Optional[str] = None

    @classmethod
    def from_model(cls, model: Mapping[str, Any]) -> "KernelSpec":
        """Build from a ``/api/kernelspecs`` entry (``{"name": ..., "spec": {...}}``)."""
        spec = model.get("spec") or {}
        name = model["name"]
        return cls(
            name=name,
            display_name=spec.get("display_name") or name,
            language=spec.get("language"),
        )


@dataclass(frozen=True)
class SessionModel:
    """A running session as listed by the gateway."""

    id: str
    path: Optional[str] = None
    notebook_path: Optional[str] = None
    kernel_id: Optional[str] = None
    kernel_name: Optional[str] = None

    @classmethod
    def from_model(cls, model: Mapping[str, Any]) -> "SessionModel":
        kernel = model.get("kernel") or {}
        notebook = model.get("notebook") or {}
        return cls(
            id=model["id"],
            path=model.get("path") or None,
            notebook_path=notebook.get("path") or None,
            kernel_id=kernel.get("id"),
            kernel_name=kernel.get("name"),
        )


@dataclass(frozen=True)
class BoundSession:
    """An existing session to attach to."""

    name: str
    model: SessionModel
    options: ConnectionOptions


@dataclass(frozen=True)
class UnboundSession:
    """A session still to be created from one of ``kernel_specs``."""

    name: str
    kernel_specs: Tuple[KernelSpec, ...]
    options: ConnectionOptions


SessionDescriptor = Union[BoundSession, UnboundSession]


@dataclass(frozen=True)
class KernelChoice:
    """A kernel spec offered on the new-session path."""

    name: str
    spec: KernelSpec
    options: ConnectionOptions
    path: str


@dataclass(frozen=True)
class ChoiceItem:
    """A labelled entry shown by the chooser."""

    name: str
    value: Any = None


@dataclass(frozen=True)
class GatewayResolution:
    """Result of kernel-spec discovery against one gateway."""

    options: ConnectionOptions
    kernel_specs: List[KernelSpec]


@dataclass(frozen=True)
class DocumentContext:
    """The buffer a remote kernel is being picked for."""

    path: Optional[str] = None
    language: Optional[str] = None


@dataclass
class ResolvedKernel:
    """A live remote kernel handed to the caller."""

    gateway_name: str
    kernel_spec: KernelSpec
    session: Any
    language: str
