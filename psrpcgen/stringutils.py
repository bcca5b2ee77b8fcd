"""Identifier helpers used when naming generated code."""

from __future__ import annotations

import unicodedata


def _is_ascii_lower(c: str) -> bool:
    return "a" <= c <= "z"


def _is_ascii_digit(c: str) -> bool:
    return "0" <= c <= "9"


def _flip_case(c: str) -> str:
    return chr(ord(c) ^ 0x20)


def camel_case(s: str) -> str:
    """Convert snake_case to CamelCase.

    An interior underscore followed by a lower-case letter is dropped and the
    letter upper-cased; a leading underscore becomes ``X``. Digits are kept as
    their own words, so ``_my_field_name_2`` becomes ``XMyFieldName_2``.
    """
    if not s:
        return ""
    out: list[str] = []
    i = 0
    if s[0] == "_":
        out.append("X")
        i = 1
    n = len(s)
    while i < n:
        c = s[i]
        if c == "_" and i + 1 < n and _is_ascii_lower(s[i + 1]):
            i += 1
            continue
        if _is_ascii_digit(c):
            out.append(c)
            i += 1
            continue
        if _is_ascii_lower(c):
            c = _flip_case(c)
        out.append(c)
        while i + 1 < n and _is_ascii_lower(s[i + 1]):
            i += 1
            out.append(s[i])
        i += 1
    return "".join(out)


def lower_camel_case(s: str) -> str:
    """Convert snake_case to camelCase. Raises ``ValueError`` on empty input."""
    camel = camel_case(s)
    if not camel:
        raise ValueError("cannot convert an empty name to camelCase")
    first = camel[0]
    if ord(first) < 0x80:
        first = _flip_case(first)
    return first + camel[1:]


def alpha_digitize(ch: str) -> str:
    """Return ``ch`` if it is a letter, decimal digit or underscore, else ``_``."""
    category = unicodedata.category(ch)
    if category.startswith("L") or category == "Nd" or ch == "_":
        return ch
    return "_"


def clean_identifier(s: str) -> str:
    """Replace every character that cannot appear in an identifier with ``_``."""
    return "".join(alpha_digitize(ch) for ch in s)


def base_name(name: str) -> str:
    """Return the last slash-separated element with its last dotted suffix removed."""
    name = name[name.rfind("/") + 1 :]
    dot = name.rfind(".")
    if dot >= 0:
        name = name[:dot]
    return name