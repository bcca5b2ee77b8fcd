"""Grouped registration of topic handlers with rollback on failure."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Registerer:
    """A pair of callables that register and deregister one handler."""

    register: Callable[..., Any]
    deregister: Callable[..., Any]


class RegistererSlice(list):
    """An ordered list of registerers acted on together."""

    def register(self, *args: Any) -> None:
        """Register every handler with ``args``.

        If one registration raises, those already registered are deregistered
        and the exception is re-raised.
        """
        for i, registerer in enumerate(self):
            try:
                registerer.register(*args)
            except Exception:
                RegistererSlice(self[:i]).deregister(*args)
                raise

    def deregister(self, *args: Any) -> None:
        """Deregister every handler with ``args``."""
        for registerer in self:
            registerer.deregister(*args)