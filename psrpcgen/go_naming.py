"""Go package and output file naming derived from proto file descriptors."""

from __future__ import annotations

import posixpath

from google.protobuf import descriptor_pb2

from psrpcgen.stringutils import base_name

FileDescriptorProto = descriptor_pb2.FileDescriptorProto


def go_package_option(f: FileDescriptorProto) -> tuple[str, str] | None:
    """Interpret the file's ``go_package`` option.

    Returns ``None`` when the option is absent or empty, otherwise a pair of
    import path (empty for a bare package name) and package name.
    """
    pkg = f.options.go_package
    if not pkg:
        return None
    bits = pkg.split(";")
    if len(bits) == 2:
        return bits[0], bits[1]
    slash = pkg.rfind("/")
    if slash < 0:
        return "", pkg
    imp_path, pkg = pkg, pkg[slash + 1 :]
    semicolon = imp_path.find(";")
    if semicolon < 0:
        return imp_path, pkg
    return imp_path[:semicolon], imp_path[semicolon + 1 :]


def go_package_name(f: FileDescriptorProto) -> tuple[str, bool]:
    """Return the Go package name and whether it came from ``go_package``.

    Without the option the name falls back to the proto package, then to the
    base name of the file.
    """
    option = go_package_option(f)
    if option is not None:
        return option[1], True
    if f.package:
        return f.package, False
    return base_name(f.name), False


def _path_ext(name: str) -> str:
    dot = name.rfind(".")
    if dot < 0 or dot < name.rfind("/"):
        return ""
    return name[dot:]


def go_file_name(
    f: FileDescriptorProto,
    source_relative_paths: bool = False,
    module_prefix: str = "",
) -> str:
    """Return the output path of the generated Go file for ``f``."""
    name = f.name
    ext = _path_ext(name)
    if ext in (".proto", ".protodevel"):
        name = name[: -len(ext)]
    name += ".psrpc.go"

    if source_relative_paths:
        return name

    option = go_package_option(f)
    if option is not None and option[0]:
        imp_path = option[0]
        if module_prefix:
            imp_path = imp_path.removeprefix(module_prefix).removeprefix("/")
        file_part = name[name.rfind("/") + 1 :]
        joined = posixpath.join(imp_path, file_part) if imp_path else file_part
        return posixpath.normpath(joined)

    return name


def parse_go_package_option(v: str) -> tuple[str, str]:
    """Split a ``go_package`` value into import path and package name."""
    import_path, sep, package_name = v.partition(";")
    if sep:
        return import_path, package_name
    if "/" in v:
        return v, v[v.rfind("/") + 1 :]
    return "", v