"""Parsing of the parameter string passed to the plugin by protoc."""

from __future__ import annotations

import json
from dataclasses import dataclass, field

_IMPORT_MAPPING_PREFIX = "go_import_mapping@"


class ParameterError(ValueError):
    """Raised when the plugin parameter string is malformed."""


@dataclass
class CommandLineParams:
    """Settings carried in the plugin parameter string."""

    import_map: dict[str, str] = field(default_factory=dict)
    paths: str = ""
    module: str = ""
    import_prefix: str = ""


def _malformed(name: str) -> ParameterError:
    return ParameterError(
        f"invalid parameter {json.dumps(name)}: expected format of parameter to be k=v"
    )


def parse_command_line_params(parameter: str) -> CommandLineParams:
    """Parse a comma-separated list of ``key=value`` pairs.

    Raises ``ParameterError`` for a pair without a value or an unknown key.
    """
    pairs: dict[str, str] = {}
    for item in parameter.split(","):
        if not item:
            continue
        key, sep, value = item.partition("=")
        if not sep:
            raise _malformed(item)
        if not value:
            raise _malformed(key)
        pairs[key] = value

    params = CommandLineParams()
    for key, value in pairs.items():
        if key.startswith("M"):
            params.import_map[key[1:]] = value
        elif key.startswith(_IMPORT_MAPPING_PREFIX):
            params.import_map[key[len(_IMPORT_MAPPING_PREFIX) :]] = value
        elif key == "paths":
            if value == "source_relative":
                params.paths = "source_relative"
            elif value != "import":
                raise ParameterError(f"invalid command line flag {key}={value}")
        elif key == "module":
            params.module = value
        elif key == "import_prefix":
            params.import_prefix = value
        else:
            raise ParameterError(f"invalid command line flag {key}={value}")
    return params