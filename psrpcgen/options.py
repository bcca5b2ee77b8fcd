"""Request, server and stream options, applied as option callables.

Durations are expressed in seconds.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

DEFAULT_SERVER_TIMEOUT = 3.0


@dataclass
class Claim:
    """A server's offer to handle a request."""

    server_id: str = ""
    affinity: float = 0.0


@dataclass
class SelectionOpts:
    """How a client chooses among servers that claim a request."""

    minimum_affinity: float = 0.0
    maximum_affinity: float = 0.0
    accept_first_available: bool = False
    affinity_timeout: float = 0.0
    short_circuit_timeout: float = 0.0
    selection_func: Callable[[Sequence[Claim]], str] | None = None


@dataclass
class RequestOpts:
    """Per-request settings."""

    timeout: float = 0.0
    selection_opts: SelectionOpts = field(default_factory=SelectionOpts)
    interceptors: list[Any] = field(default_factory=list)


@dataclass
class ServerOpts:
    """Server settings."""

    server_id: str = ""
    timeout: float = DEFAULT_SERVER_TIMEOUT
    channel_size: int = 0
    interceptors: list[Callable[..., Any]] = field(default_factory=list)
    stream_interceptors: list[Callable[..., Any]] = field(default_factory=list)
    chained_interceptor: Callable[..., Any] | None = None


@dataclass
class StreamOpts:
    """Settings for a single stream send."""

    timeout: float = 0.0


RequestOption = Callable[[RequestOpts], None]
ServerOption = Callable[[ServerOpts], None]
StreamOption = Callable[[StreamOpts], None]


def with_request_timeout(timeout: float) -> RequestOption:
    """Set the request timeout."""

    def apply(o: RequestOpts) -> None:
        o.timeout = timeout

    return apply


def with_selection_opts(opts: SelectionOpts) -> RequestOption:
    """Set the server selection options."""

    def apply(o: RequestOpts) -> None:
        o.selection_opts = opts

    return apply


def with_request_interceptors(*interceptors: Any) -> RequestOption:
    """Append interceptors for this request."""

    def apply(o: RequestOpts) -> None:
        o.interceptors.extend(interceptors)

    return apply


def with_server_id(server_id: str) -> ServerOption:
    """Set a fixed server identifier."""

    def apply(o: ServerOpts) -> None:
        o.server_id = server_id

    return apply


def with_server_timeout(timeout: float) -> ServerOption:
    """Set the server timeout."""

    def apply(o: ServerOpts) -> None:
        o.timeout = timeout

    return apply


def with_server_channel_size(size: int) -> ServerOption:
    """Set the channel size; values that are not positive are ignored."""

    def apply(o: ServerOpts) -> None:
        if size > 0:
            o.channel_size = size

    return apply


def with_server_rpc_interceptors(*interceptors: Callable[..., Any] | None) -> ServerOption:
    """Append RPC interceptors, skipping ``None``."""

    def apply(o: ServerOpts) -> None:
        o.interceptors.extend(i for i in interceptors if i is not None)

    return apply


def with_server_stream_interceptors(*interceptors: Callable[..., Any]) -> ServerOption:
    """Append stream interceptors."""

    def apply(o: ServerOpts) -> None:
        o.stream_interceptors.extend(interceptors)

    return apply


def with_server_options(*opts: ServerOption) -> ServerOption:
    """Combine several server options into one."""

    def apply(o: ServerOpts) -> None:
        for opt in opts:
            opt(o)

    return apply


def with_timeout(timeout: float) -> StreamOption:
    """Set the timeout of a stream send."""

    def apply(o: StreamOpts) -> None:
        o.timeout = timeout

    return apply