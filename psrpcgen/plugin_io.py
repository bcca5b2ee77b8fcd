"""Reading plugin requests from protoc and writing responses back."""

from __future__ import annotations

import sys
from typing import BinaryIO, Protocol

from google.protobuf import descriptor_pb2
from google.protobuf.compiler import plugin_pb2
from google.protobuf.message import DecodeError, EncodeError


class GeneratorError(Exception):
    """A fatal error that stops code generation."""


class _Generator(Protocol):
    def generate(
        self, request: plugin_pb2.CodeGeneratorRequest
    ) -> plugin_pb2.CodeGeneratorResponse: ...


def files_to_generate(
    request: plugin_pb2.CodeGeneratorRequest,
) -> list[descriptor_pb2.FileDescriptorProto]:
    """Return the descriptors of the files protoc asked to generate, in order."""
    by_name: dict[str, descriptor_pb2.FileDescriptorProto] = {}
    for f in request.proto_file:
        by_name.setdefault(f.name, f)
    files = []
    for name in request.file_to_generate:
        if name not in by_name:
            raise GeneratorError(f"could not find file named {name}")
        files.append(by_name[name])
    return files


def _binary(stream):
    return getattr(stream, "buffer", stream)


def read_request(stream: BinaryIO) -> plugin_pb2.CodeGeneratorRequest:
    """Read and parse a code generator request from a binary stream."""
    try:
        data = _binary(stream).read()
    except OSError as err:
        raise GeneratorError(f"reading input:{err}") from err

    request = plugin_pb2.CodeGeneratorRequest()
    try:
        request.ParseFromString(data)
    except DecodeError as err:
        raise GeneratorError(f"parsing input proto:{err}") from err

    if not request.file_to_generate:
        raise GeneratorError("no files to generate")
    return request


def write_response(stream: BinaryIO, response: plugin_pb2.CodeGeneratorResponse) -> None:
    """Serialize a code generator response to a binary stream."""
    try:
        data = response.SerializeToString()
    except EncodeError as err:
        raise GeneratorError(f"marshaling response:{err}") from err
    out = _binary(stream)
    try:
        out.write(data)
        out.flush()
    except OSError as err:
        raise GeneratorError(f"writing response:{err}") from err


def run(generator: _Generator, stdin=None, stdout=None) -> int:
    """Run one request/response exchange; return a process exit status.

    A ``GeneratorError`` is reported on standard error and yields status 1.
    """
    stdin = sys.stdin if stdin is None else stdin
    stdout = sys.stdout if stdout is None else stdout
    try:
        request = read_request(stdin)
        response = generator.generate(request)
        write_response(stdout, response)
    except GeneratorError as err:
        sys.stderr.write(f"error:{err}\n")
        return 1
    return 0