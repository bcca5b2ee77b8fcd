"""Random identifiers for clients, servers, requests and streams."""

from __future__ import annotations

import random
import threading

ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
ID_LENGTH = 12

_rng = random.Random()
_lock = threading.Lock()


def _random_chars(count: int) -> str:
    """Draw ``count`` characters from the alphabet, six random bits at a time."""
    chars: list[str] = []
    while True:
        with _lock:
            r = _rng.getrandbits(63)
        for _ in range(10):
            index = r & 0x3F
            if index < len(ALPHABET):
                chars.append(ALPHABET[index])
                if len(chars) == count:
                    return "".join(chars)
            r >>= 6


def _format_id(prefix: str) -> str:
    return prefix + _random_chars(ID_LENGTH)


def new_client_id() -> str:
    """Return a new client identifier, prefixed ``CLI_``."""
    return _format_id("CLI_")


def new_server_id() -> str:
    """Return a new server identifier, prefixed ``SRV_``."""
    return _format_id("SRV_")


def new_request_id() -> str:
    """Return a new request identifier, prefixed ``REQ_``."""
    return _format_id("REQ_")


def new_stream_id() -> str:
    """Return a new stream identifier, prefixed ``STR_``."""
    return _format_id("STR_")


def new_string() -> str:
    """Return a random string of identifier characters with no prefix."""
    return _format_id("")