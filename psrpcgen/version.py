"""Release version of the generator and the runtime it targets."""

from __future__ import annotations

import re

VERSION = "v0.6.0"
PSRPC_VERSION_0_6 = True

_IDENT = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"
_NUM = r"(?:0|[1-9]\d*)"
_SEMVER = re.compile(
    rf"v(?P<major>{_NUM})"
    rf"(?:\.(?P<minor>{_NUM})(?:\.(?P<patch>{_NUM}))?)?"
    rf"(?P<pre>-{_IDENT})?"
    rf"(?P<build>\+{_IDENT})?"
)


def version_tag(version: str = VERSION) -> str:
    """Return the compatibility marker name for a semantic version.

    ``"v0.6.0"`` becomes ``"PsrpcVersion_0_6"``. A missing minor number counts
    as zero. Raises ``ValueError`` for anything that is not a valid version.
    """
    match = _SEMVER.fullmatch(version)
    if match is None:
        raise ValueError(f"invalid semantic version: {version!r}")
    if (match["pre"] or match["build"]) and match["patch"] is None:
        raise ValueError(f"invalid semantic version: {version!r}")
    minor = match["minor"] if match["minor"] is not None else "0"
    return f"PsrpcVersion_{match['major']}_{minor}"