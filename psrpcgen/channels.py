"""Bus channel names for services, methods and topics."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

_CHANNEL_CHARS = frozenset("0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz")


@dataclass(frozen=True)
class Channel:
    """Names of one logical channel on the different bus layouts."""

    legacy: str = ""
    server: str = ""
    local: str = ""


@dataclass
class RPCInfo:
    """Identity of a call: service, method and topic."""

    service: str = ""
    method: str = ""
    topic: list[str] = field(default_factory=list)
    multi: bool = False


@dataclass(frozen=True)
class MethodInfo:
    """Routing properties of a registered method."""

    affinity_enabled: bool = False
    multi: bool = False
    require_claim: bool = False
    queue: bool = False


def _sanitize(s: str) -> str:
    out = []
    for ch in s:
        if ch in _CHANNEL_CHARS:
            out.append(ch)
        elif ord(ch) < 0x10000:
            out.append(f"u+{ord(ch):04x}")
        else:
            out.append(f"U+{ord(ch):08x}")
    return "".join(out)


def _append_parts(buf: list[str], delim: str, parts) -> None:
    prefix = False
    for part in parts:
        if prefix:
            buf.append(delim)
        before = len(buf)
        if isinstance(part, str):
            text = _sanitize(part)
            if text:
                buf.append(text)
        else:
            _append_parts(buf, delim, part)
        prefix = len(buf) > before


def format_channel(delim: str, *args) -> str:
    """Join sanitized parts with ``delim``; a part may be a list of strings."""
    buf: list[str] = []
    _append_parts(buf, delim, args)
    return "".join(buf)


def _format_client_channel(service: str, client_id: str, channel: str) -> str:
    return f"CLI.{service}.{client_id}.{channel}"


def _format_local_channel(method: str, channel: str) -> str:
    return f"{method}.{channel}"


def _format_server_channel(service: str, topic: list[str], queue: bool) -> str:
    parts = [f"SRV.{service}"]
    parts.extend("." + _sanitize(t) for t in topic if t)
    if queue:
        parts.append(".Q")
    return "".join(parts)


def get_claim_request_channel(service: str, client_id: str) -> Channel:
    """Channel on which a client receives claim requests."""
    return Channel(
        legacy=format_channel("|", service, client_id, "CLAIM"),
        server=_format_client_channel(service, client_id, "CLAIM"),
    )


def get_stream_channel(service: str, node_id: str) -> Channel:
    """Channel on which a node receives stream messages."""
    return Channel(
        legacy=format_channel("|", service, node_id, "STR"),
        server=_format_client_channel(service, node_id, "STR"),
    )


def get_response_channel(service: str, client_id: str) -> Channel:
    """Channel on which a client receives responses."""
    return Channel(
        legacy=format_channel("|", service, client_id, "RES"),
        server=_format_client_channel(service, client_id, "RES"),
    )


@dataclass
class RequestInfo(RPCInfo):
    """Call identity together with the method's routing properties."""

    affinity_enabled: bool = False
    require_claim: bool = False
    queue: bool = False

    def rpc_channel(self) -> Channel:
        """Channel on which servers receive requests."""
        return Channel(
            legacy=format_channel("|", self.service, self.method, self.topic, "REQ"),
            server=_format_server_channel(self.service, self.topic, self.queue),
            local=_format_local_channel(self.method, "REQ"),
        )

    def handler_key(self) -> str:
        """Key that identifies a handler for this method and topic."""
        return format_channel(".", self.method, self.topic)

    def claim_response_channel(self) -> Channel:
        """Channel on which servers receive claim responses."""
        return Channel(
            legacy=format_channel("|", self.service, self.method, self.topic, "RCLAIM"),
            server=_format_server_channel(self.service, self.topic, False),
            local=_format_local_channel(self.method, "RCLAIM"),
        )

    def stream_server_channel(self) -> Channel:
        """Channel on which servers receive stream messages."""
        return Channel(
            legacy=format_channel("|", self.service, self.method, self.topic, "STR"),
            server=_format_server_channel(self.service, self.topic, False),
            local=_format_local_channel(self.method, "STR"),
        )


class ServiceDefinition:
    """A named service instance and its registered methods."""

    def __init__(self, name: str = "", id: str = "") -> None:
        self.name = name
        self.id = id
        self._methods: dict[str, MethodInfo] = {}
        self._lock = threading.Lock()

    @property
    def methods(self) -> dict[str, MethodInfo]:
        """A snapshot of the registered methods."""
        with self._lock:
            return dict(self._methods)

    def register_method(
        self,
        name: str,
        affinity_enabled: bool,
        multi: bool,
        require_claim: bool,
        queue: bool,
    ) -> None:
        """Record routing properties for a method, replacing earlier ones."""
        info = MethodInfo(
            affinity_enabled=affinity_enabled,
            multi=multi,
            require_claim=require_claim,
            queue=queue,
        )
        with self._lock:
            self._methods[name] = info

    def get_info(self, rpc: str, topic: list[str] | None = None) -> RequestInfo:
        """Build request info for a registered method. Raises ``KeyError`` if unknown."""
        with self._lock:
            method = self._methods.get(rpc)
        if method is None:
            raise KeyError(f"method {rpc!r} is not registered on service {self.name!r}")
        return RequestInfo(
            service=self.name,
            method=rpc,
            topic=list(topic) if topic else [],
            multi=method.multi,
            affinity_enabled=method.affinity_enabled,
            require_claim=method.require_claim,
            queue=method.queue,
        )