"""Generation of Go client and server code from a protoc plugin request."""

from __future__ import annotations

import gzip
import posixpath
from collections.abc import Callable, Iterable

from google.protobuf import descriptor_pb2
from google.protobuf.compiler import plugin_pb2

from psrpcgen.command_line import ParameterError, parse_command_line_params
from psrpcgen.gen_options import MethodOptions
from psrpcgen.go_naming import go_file_name, go_package_name, go_package_option, parse_go_package_option
from psrpcgen.plugin_io import GeneratorError, files_to_generate
from psrpcgen.service_writer import ServiceWriter
from psrpcgen.stringutils import base_name, camel_case, clean_identifier
from psrpcgen.typemap import Registry
from psrpcgen.version import VERSION, version_tag

FileDescriptorProto = descriptor_pb2.FileDescriptorProto
MethodDescriptorProto = descriptor_pb2.MethodDescriptorProto

_RUNTIME_PACKAGES = ("client", "context", "info", "psrpc", "rand", "server", "version")
# Go import path of the runtime library that generated code depends on.
RUNTIME_MODULE = "example.com/psrpc"
_RUNTIME_SUBPACKAGES = ("", "/pkg/client", "/pkg/info", "/pkg/rand", "/pkg/server", "/version")
_OPENERS = {")": "(", "]": "[", "}": "{"}


def _default_options(method: MethodDescriptorProto) -> MethodOptions:
    return MethodOptions()


def _go_quote(s: str) -> str:
    out = ['"']
    for ch in s:
        if ch == "\\":
            out.append("\\\\")
        elif ch == '"':
            out.append('\\"')
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\t":
            out.append("\\t")
        elif ch == "\r":
            out.append("\\r")
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\x{ord(ch):02x}")
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


def _path_dir(p: str) -> str:
    return posixpath.normpath(posixpath.dirname(p))


def deduce_gen_pkg_name(gen_files: Iterable[FileDescriptorProto]) -> str:
    """Choose the Go package name for the generated code.

    An explicit ``go_package`` wins and must agree across files; otherwise the
    implicit names must agree. Raises ``GeneratorError`` on a conflict.
    """
    files = list(gen_files)
    chosen = ""
    for f in files:
        name, explicit = go_package_name(f)
        if explicit:
            name = clean_identifier(name)
            if chosen and chosen != name:
                raise GeneratorError(
                    "files have conflicting go_package settings, must be the same: "
                    f"{_go_quote(chosen)} and {_go_quote(name)}"
                )
            chosen = name
    if chosen:
        return chosen

    for f in files:
        name = clean_identifier(go_package_name(f)[0])
        if chosen and chosen != name:
            raise GeneratorError(
                "files have conflicting package names, must be the same or overridden "
                f"with go_package: {_go_quote(chosen)} and {_go_quote(name)}"
            )
        chosen = name
    return chosen


def _check_balanced(source: str) -> str | None:
    """Return a description of the first bracket mismatch, or ``None``."""
    stack: list[tuple[str, int]] = []
    line = 1
    i = 0
    n = len(source)
    while i < n:
        c = source[i]
        if source.startswith("//", i):
            end = source.find("\n", i)
            i = n if end < 0 else end
            continue
        if c == "\n":
            line += 1
        elif c == '"':
            i += 1
            while i < n and source[i] not in '"\n':
                if source[i] == "\\":
                    i += 1
                i += 1
            if i >= n or source[i] == "\n":
                return f"{line}: unterminated string literal"
        elif c in "([{":
            stack.append((c, line))
        elif c in ")]}":
            if not stack or stack[-1][0] != _OPENERS[c]:
                return f"{line}: unexpected {c}"
            stack.pop()
        i += 1
    if stack:
        opener, opened = stack[-1]
        return f"{opened}: unclosed {opener}"
    return None


def _format_go(source: str) -> str:
    problem = _check_balanced(source)
    if problem is not None:
        numbered = "".join(
            f"{number:5d}\t{text}\n" for number, text in enumerate(source.splitlines(), 1)
        )
        raise GeneratorError(f"bad Go source code was generated: {problem} \n{numbered}")

    lines: list[str] = []
    for raw in source.split("\n"):
        stripped = raw.rstrip()
        if not stripped:
            if lines and lines[-1] != "" and not lines[-1].endswith("{"):
                lines.append("")
            continue
        body = stripped.lstrip(" ")
        indent = len(stripped) - len(body)
        text = "\t" * (indent // 2) + " " * (indent % 2) + body
        if body.startswith("}") and lines and lines[-1] == "":
            lines.pop()
        lines.append(text)
    while lines and lines[-1] == "":
        lines.pop()
    return "\n".join(lines) + "\n"


class Generator:
    """Turns a plugin request into generated ``.psrpc.go`` files.

    ``options_for`` gives the generator options of a method; by default every
    method uses the default options.
    """

    runtime_module = RUNTIME_MODULE

    def __init__(
        self, options_for: Callable[[MethodDescriptorProto], MethodOptions] | None = None
    ) -> None:
        self.options_for = options_for or _default_options
        self.import_prefix = ""
        self.import_map: dict[str, str] = {}
        self.source_relative_paths = False
        self.module_prefix = ""
        self.gen_pkg_name = ""
        self.files_handled = 0
        self.registry: Registry | None = None
        self._pkgs: dict[str, str] = {}
        self._names_in_use: set[str] = set()
        self._file_pkg: dict[str, str] = {}
        self._gen_files: list[FileDescriptorProto] = []
        self._out: list[str] = []

    def generate(
        self, request: plugin_pb2.CodeGeneratorRequest
    ) -> plugin_pb2.CodeGeneratorResponse:
        """Generate a response for ``request``. Raises ``GeneratorError`` on failure."""
        try:
            params = parse_command_line_params(request.parameter)
        except ParameterError as err:
            raise GeneratorError(
                f"could not parse parameters passed to --psrpc_out {err}"
            ) from err

        self.import_prefix = params.import_prefix
        self.import_map = dict(params.import_map)
        self.source_relative_paths = params.paths == "source_relative"
        self.module_prefix = params.module
        self.files_handled = 0
        self._pkgs = {}
        self._names_in_use = set()
        self._file_pkg = {}

        self._gen_files = files_to_generate(request)
        if not self._gen_files:
            raise GeneratorError("no files to generate")

        self.registry = Registry(request.proto_file)

        for name in _RUNTIME_PACKAGES:
            self.register_package_name(name)

        self.gen_pkg_name = deduce_gen_pkg_name(self._gen_files)

        option = go_package_option(self._gen_files[0])
        gen_import_path = option[0] if option is not None else ""
        gen_names = {f.name for f in self._gen_files}

        for f in request.proto_file:
            if f.name == "options.proto" and f.package == "psrpc":
                continue
            if f.name in gen_names:
                self._file_pkg[f.name] = self.gen_pkg_name
                continue
            if gen_import_path:
                other = go_package_option(f)
                if other is not None and other[0] == gen_import_path:
                    self._file_pkg[f.name] = self.gen_pkg_name
                    continue
            name = f.package or base_name(f.name)
            self._file_pkg[f.name] = self.register_package_name(clean_identifier(name))

        response = plugin_pb2.CodeGeneratorResponse()
        response.supported_features = plugin_pb2.CodeGeneratorResponse.FEATURE_PROTO3_OPTIONAL
        for f in self._gen_files:
            generated = self._generate_file(f)
            if generated is not None:
                response.file.append(generated)
        return response

    def register_package_name(self, name: str) -> str:
        """Reserve a package alias for ``name``, numbering it if already taken."""
        alias = name
        i = 1
        while alias in self._names_in_use:
            alias = f"{name}{i}"
            i += 1
        self._names_in_use.add(alias)
        self._pkgs[name] = alias
        return alias

    def go_type_name(self, proto_name: str) -> str:
        """Go type name, with package prefix, for a fully-qualified message name."""
        definition = self.registry.message_definition(proto_name) if self.registry else None
        if definition is None:
            raise GeneratorError(f"could not find message for {proto_name}")
        prefix = ""
        pkg = self._file_pkg.get(definition.file.name, "")
        if pkg != self.gen_pkg_name:
            prefix = pkg + "."
        name = "".join(camel_case(p.descriptor.name) + "_" for p in definition.lineage())
        return prefix + name + camel_case(definition.descriptor.name)

    def go_file_name(self, file: FileDescriptorProto) -> str:
        """Output path of the generated file for ``file``."""
        return go_file_name(file, self.source_relative_paths, self.module_prefix)

    # output

    def _p(self, *parts: str) -> None:
        self._out.append("".join(parts))
        self._out.append("\n")

    def _generate_file(
        self, file: FileDescriptorProto
    ) -> plugin_pb2.CodeGeneratorResponse.File | None:
        if not file.service:
            return None

        self._out = []
        self._file_header(file)
        self._imports(file)
        self._p("var _ = ", self._pkgs["version"], ".", version_tag(VERSION))

        writer = ServiceWriter(self.registry, self._pkgs, self.go_type_name, self.options_for)
        for service in file.service:
            self._out.append(writer.write_service(file, service))

        self._file_descriptor(file)

        result = plugin_pb2.CodeGeneratorResponse.File()
        result.name = self.go_file_name(file)
        result.content = _format_go("".join(self._out))
        self._out = []
        self.files_handled += 1
        return result

    def _file_header(self, file: FileDescriptorProto) -> None:
        self._p("// Code generated by protoc-gen-psrpc ", VERSION, ", DO NOT EDIT.")
        self._p("// source: ", file.name)
        self._p()

        comments = self.registry.file_comments(file)
        if comments.leading:
            for line in comments.leading.split("\n"):
                if line:
                    self._p("// " + line.removeprefix(" "))
            self._p()

        self._p("package ", self.gen_pkg_name)
        self._p()

    def _imports(self, file: FileDescriptorProto) -> None:
        self._p("import (")
        if any(service.method for service in file.service):
            self._p('  "context"')
            self._p()
        for sub in _RUNTIME_SUBPACKAGES:
            self._p("  ", _go_quote(self.runtime_module + sub))
        self._p(")")

        deps: dict[str, str] = {}
        our_import_path = _path_dir(self.go_file_name(file))
        for service in file.service:
            for method in service.method:
                for proto_name in (method.input_type, method.output_type):
                    definition = self.registry.message_definition(proto_name)
                    if definition is None:
                        raise GeneratorError(f"could not find message for {proto_name}")
                    import_path, _ = parse_go_package_option(definition.file.options.go_package)
                    if not import_path:
                        if _path_dir(self.go_file_name(definition.file)) == our_import_path:
                            continue
                    import_path = self.import_map.get(definition.file.name, import_path)
                    import_path = self.import_prefix + import_path

                    pkg = self._file_pkg.get(definition.file.name, "")
                    if pkg != self.gen_pkg_name:
                        deps[pkg] = _go_quote(import_path)

        for pkg in sorted(deps):
            self._p("import ", pkg, " ", deps[pkg])
        if deps:
            self._p()

    def _file_descriptor(self, file: FileDescriptorProto) -> None:
        stripped = FileDescriptorProto()
        stripped.CopyFrom(file)
        stripped.ClearField("source_code_info")
        data = gzip.compress(stripped.SerializeToString(), compresslevel=9, mtime=0)

        var_name = f"psrpcFileDescriptor{self.files_handled}"
        self._p()
        self._p("var ", var_name, " = []byte{")
        self._p("\t// ", str(len(data)), " bytes of a gzipped FileDescriptorProto")
        for start in range(0, len(data), 16):
            chunk = data[start : start + 16]
            self._p("\t", "".join(f"0x{c:02x}," for c in chunk))
        self._p("}")