"""Request metadata carried through an immutable context."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

Metadata = dict[str, str]


class Context:
    """An immutable chain of key/value pairs; ``with_value`` returns a new context."""

    __slots__ = ("_parent", "_key", "_value", "_has_value")

    def __init__(self) -> None:
        self._parent: Context | None = None
        self._key: Any = None
        self._value: Any = None
        self._has_value = False

    def value(self, key: Any) -> Any:
        """Return the value most recently stored under ``key``, or ``None``."""
        ctx: Context | None = self
        while ctx is not None:
            if ctx._has_value and ctx._key == key:
                return ctx._value
            ctx = ctx._parent
        return None

    def with_value(self, key: Any, value: Any) -> Context:
        """Return a child context that maps ``key`` to ``value``."""
        child = Context()
        child._parent = self
        child._key = key
        child._value = value
        child._has_value = True
        return child


@dataclass
class Header:
    """Header of an incoming message."""

    remote_id: str = ""
    sent_at: datetime | None = None
    metadata: Metadata | None = field(default=None)


class _HeaderKey:
    pass


class _MetadataKey:
    pass


_HEADER_KEY = _HeaderKey()
_METADATA_KEY = _MetadataKey()


@dataclass(frozen=True)
class _OutgoingMetadata:
    md: Metadata | None
    added: tuple[tuple[str, ...], ...] = ()


def new_context_with_incoming_header(ctx: Context, head: Header) -> Context:
    """Attach an incoming message header to the context."""
    return ctx.with_value(_HEADER_KEY, head)


def incoming_header(ctx: Context) -> Header | None:
    """Return a copy of the incoming header on the context, if any."""
    head = ctx.value(_HEADER_KEY)
    if not isinstance(head, Header):
        return None
    return Header(
        remote_id=head.remote_id,
        sent_at=head.sent_at,
        metadata=dict(head.metadata) if head.metadata is not None else None,
    )


def new_context_with_outgoing_metadata(ctx: Context, md: Metadata | None) -> Context:
    """Replace any outgoing metadata on the context with ``md``."""
    return ctx.with_value(_METADATA_KEY, _OutgoingMetadata(md=md))


def with_outgoing_metadata(ctx: Context, md: Metadata | None) -> Context:
    """Merge ``md`` into the outgoing metadata of the context."""
    if not md:
        return ctx
    current = ctx.value(_METADATA_KEY)
    if isinstance(current, _OutgoingMetadata):
        if current.md is not None:
            merged = dict(current.md)
            merged.update(md)
            return ctx.with_value(_METADATA_KEY, _OutgoingMetadata(merged, current.added))
        return ctx.with_value(_METADATA_KEY, _OutgoingMetadata(md, current.added))
    return ctx.with_value(_METADATA_KEY, _OutgoingMetadata(md))


def append_metadata_to_outgoing_context(ctx: Context, *kv: str) -> Context:
    """Append alternating keys and values to the outgoing metadata."""
    if not kv:
        return ctx
    current = ctx.value(_METADATA_KEY)
    if not isinstance(current, _OutgoingMetadata) or current.md is None:
        current = _OutgoingMetadata(md={})
    return ctx.with_value(
        _METADATA_KEY, _OutgoingMetadata(current.md, current.added + (tuple(kv),))
    )


def outgoing_context_metadata(ctx: Context) -> Metadata | None:
    """Return a copy of the outgoing metadata on the context, if any."""
    current = ctx.value(_METADATA_KEY)
    if not isinstance(current, _OutgoingMetadata):
        return None
    if current.md is None and not current.added:
        return None
    result = dict(current.md) if current.md is not None else {}
    for pairs in current.added:
        for key, value in zip(pairs[0::2], pairs[1::2]):
            result[key] = value
    return result