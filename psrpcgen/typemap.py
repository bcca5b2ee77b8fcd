"""Index of message definitions and source comments across proto files."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from google.protobuf import descriptor_pb2

FileDescriptorProto = descriptor_pb2.FileDescriptorProto
DescriptorProto = descriptor_pb2.DescriptorProto
ServiceDescriptorProto = descriptor_pb2.ServiceDescriptorProto
MethodDescriptorProto = descriptor_pb2.MethodDescriptorProto

# Field numbers used in SourceCodeInfo paths.
_PACKAGE_PATH = 2  # FileDescriptorProto.package
_MESSAGE_PATH = 4  # FileDescriptorProto.message_type
_SERVICE_PATH = 6  # FileDescriptorProto.service
_MESSAGE_MESSAGE_PATH = 3  # DescriptorProto.nested_type
_SERVICE_METHOD_PATH = 2  # ServiceDescriptorProto.method


@dataclass(frozen=True)
class DefinitionComments:
    """Comments attached to a definition in a proto file, markers stripped."""

    leading: str = ""
    trailing: str = ""
    leading_detached: tuple[str, ...] = ()


def comments_at_path(path: Sequence[int], source_file: FileDescriptorProto) -> DefinitionComments:
    """Return the comments recorded for ``path`` in ``source_file``, if any."""
    if not source_file.HasField("source_code_info"):
        return DefinitionComments()
    wanted = list(path)
    for loc in source_file.source_code_info.location:
        if list(loc.path) == wanted:
            return DefinitionComments(
                leading=loc.leading_comments,
                trailing=loc.trailing_comments,
                leading_detached=tuple(loc.leading_detached_comments),
            )
    return DefinitionComments()


@dataclass(eq=False)
class MessageDefinition:
    """A message descriptor together with where it was defined."""

    descriptor: DescriptorProto
    file: FileDescriptorProto
    parent: MessageDefinition | None = None
    comments: DefinitionComments = field(default_factory=DefinitionComments)
    path: tuple[int, ...] = ()

    def proto_name(self) -> str:
        """Return the dot-delimited, fully-qualified proto name."""
        parts = [""]
        if self.file.package:
            parts.append(self.file.package)
        parts.extend(p.descriptor.name for p in self.lineage())
        parts.append(self.descriptor.name)
        return ".".join(parts)

    def lineage(self) -> list[MessageDefinition]:
        """Return the chain of parents, outermost first."""
        parents: list[MessageDefinition] = []
        p = self.parent
        while p is not None:
            parents.append(p)
            p = p.parent
        parents.reverse()
        return parents

    def _descendants(self) -> Iterable[MessageDefinition]:
        for i, child in enumerate(self.descriptor.nested_type):
            path = self.path + (_MESSAGE_MESSAGE_PATH, i)
            child_def = MessageDefinition(
                descriptor=child,
                file=self.file,
                parent=self,
                comments=comments_at_path(path, self.file),
                path=path,
            )
            yield child_def
            yield from child_def._descendants()


def _message_defs_for_file(
    f: FileDescriptorProto, files_by_name: dict[str, FileDescriptorProto]
) -> dict[str, MessageDefinition]:
    by_proto_name: dict[str, MessageDefinition] = {}
    for i, d in enumerate(f.message_type):
        path = (_MESSAGE_PATH, i)
        top = MessageDefinition(
            descriptor=d,
            file=f,
            parent=None,
            comments=comments_at_path(path, f),
            path=path,
        )
        by_proto_name[top.proto_name()] = top
        for child in top._descendants():
            by_proto_name[child.proto_name()] = child

    for dep_index in f.public_dependency:
        dep_name = f.dependency[dep_index]
        dep_file = files_by_name.get(dep_name)
        if dep_file is None:
            raise KeyError(f"publicly imported file {dep_name!r} is not available")
        for definition in _message_defs_for_file(dep_file, files_by_name).values():
            imported = MessageDefinition(
                descriptor=definition.descriptor,
                file=f,
                parent=definition.parent,
                comments=comments_at_path(definition.path, dep_file),
                path=definition.path,
            )
            by_proto_name[imported.proto_name()] = imported

    return by_proto_name


def _index_of(items, wanted) -> int:
    """Position of ``wanted`` in ``items`` by identity, falling back to equality."""
    for i, item in enumerate(items):
        if item is wanted:
            return i
    for i, item in enumerate(items):
        if item == wanted:
            return i
    return -1


class Registry:
    """Lookup of message definitions by fully-qualified proto name."""

    def __init__(self, files: Iterable[FileDescriptorProto]) -> None:
        self.all_files = list(files)
        self.files_by_name = {f.name: f for f in self.all_files}
        self._messages: dict[str, MessageDefinition] = {}
        for f in self.all_files:
            self._messages.update(_message_defs_for_file(f, self.files_by_name))

    def file_comments(self, file: FileDescriptorProto) -> DefinitionComments:
        """Comments attached to the file's package statement."""
        return comments_at_path((_PACKAGE_PATH,), file)

    def service_comments(
        self, file: FileDescriptorProto, service: ServiceDescriptorProto
    ) -> DefinitionComments:
        """Comments attached to a service. Raises ``LookupError`` if absent."""
        i = _index_of(file.service, service)
        if i < 0:
            raise LookupError("service not found in file")
        return comments_at_path((_SERVICE_PATH, i), file)

    def method_comments(
        self,
        file: FileDescriptorProto,
        service: ServiceDescriptorProto,
        method: MethodDescriptorProto,
    ) -> DefinitionComments:
        """Comments attached to a method. Raises ``LookupError`` if absent."""
        i = _index_of(file.service, service)
        if i >= 0:
            j = _index_of(file.service[i].method, method)
            if j >= 0:
                return comments_at_path((_SERVICE_PATH, i, _SERVICE_METHOD_PATH, j), file)
        raise LookupError("service not found in file")

    def method_input_definition(self, method: MethodDescriptorProto) -> MessageDefinition | None:
        """Definition of the method's input message."""
        return self._messages.get(method.input_type)

    def method_output_definition(self, method: MethodDescriptorProto) -> MessageDefinition | None:
        """Definition of the method's output message."""
        return self._messages.get(method.output_type)

    def message_definition(self, name: str) -> MessageDefinition | None:
        """Definition for a fully-qualified proto name, or ``None``."""
        return self._messages.get(name)