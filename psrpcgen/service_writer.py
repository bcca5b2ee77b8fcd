"""Emission of Go client and server code for one proto service."""

from __future__ import annotations

from collections.abc import Callable, Mapping

from google.protobuf import descriptor_pb2

from psrpcgen.gen_options import (
    MethodOptions,
    Routing,
    TopicGroup,
    TopicSlice,
    require_claim,
    topics_for_method,
)
from psrpcgen.plugin_io import GeneratorError
from psrpcgen.stringutils import camel_case
from psrpcgen.typemap import DefinitionComments, Registry

FileDescriptorProto = descriptor_pb2.FileDescriptorProto
ServiceDescriptorProto = descriptor_pb2.ServiceDescriptorProto
MethodDescriptorProto = descriptor_pb2.MethodDescriptorProto

_CLIENT = "Client"
_SERVER_IMPL = "ServerImpl"
_SERVER = "Server"


def _unexported(s: str) -> str:
    return s[:1].lower() + s[1:]


class ServiceWriter:
    """Writes the interfaces, client and server for a service.

    ``packages`` maps imported package names to their aliases, ``type_name``
    turns a fully-qualified proto message name into a Go type name and
    ``options_for`` gives the generator options of a method.
    """

    def __init__(
        self,
        registry: Registry | None,
        packages: Mapping[str, str],
        type_name: Callable[[str], str],
        options_for: Callable[[MethodDescriptorProto], MethodOptions],
    ) -> None:
        self.registry = registry
        self.packages = packages
        self.type_name = type_name
        self.options_for = options_for
        self._out: list[str] = []

    # output helpers

    def _w(self, *parts: str) -> None:
        self._out.append("".join(parts))

    def _p(self, *parts: str) -> None:
        self._out.append("".join(parts))
        self._out.append("\n")

    def _pkg(self, name: str) -> str:
        return self.packages.get(name, name)

    def _section_comment(self, title: str) -> None:
        self._p()
        self._p("// ", "=" * len(title))
        self._p("// ", title)
        self._p("// ", "=" * len(title))
        self._p()

    def _print_comments(self, comments: DefinitionComments) -> bool:
        text = comments.leading.removesuffix("\n")
        if not text.strip():
            return False
        for line in text.split("\n"):
            self._p("// ", line.removeprefix(" "))
        return True

    def _service_comments(self, file, service) -> None:
        if self.registry is None:
            return
        try:
            comments = self.registry.service_comments(file, service)
        except LookupError:
            return
        self._print_comments(comments)

    def _method_comments(self, file, service, method) -> None:
        if self.registry is None:
            return
        try:
            comments = self.registry.method_comments(file, service, method)
        except LookupError:
            return
        self._print_comments(comments)

    # topics

    def typed_topics(self, service: ServiceDescriptorProto) -> TopicSlice:
        """Distinct typed topics used by the service's methods, first seen first."""
        topics = TopicSlice()
        seen: set[str] = set()
        for method in service.method:
            for topic in topics_for_method(self.options_for(method)):
                if topic.typed and topic.type_name not in seen:
                    seen.add(topic.type_name)
                    topics.append(topic)
        return topics

    def topic_groups(self, service: ServiceDescriptorProto) -> list[TopicGroup]:
        """Topic groups of the service. Raises ``GeneratorError`` on a mismatch."""
        groups: list[TopicGroup] = []
        found: dict[str, int] = {}
        for method in service.method:
            opts = self.options_for(method)
            params = opts.topic_params
            if params is None or not params.group or opts.subscription:
                continue
            meth_name = camel_case(method.name)
            topics = topics_for_method(opts)
            if params.group in found:
                group = groups[found[params.group]]
                if list(group.topics) != list(topics):
                    raise GeneratorError(
                        f'all members of topic group "{params.group}" must have the same '
                        f'parameter names and typed values. mismatch found in "{method.name}"'
                    )
                group.meth_names.append(meth_name)
            else:
                found[params.group] = len(groups)
                groups.append(TopicGroup([meth_name], camel_case(params.group), topics))
        return groups

    # service

    def write_service(self, file: FileDescriptorProto, service: ServiceDescriptorProto) -> str:
        """Return the Go source for the service's interfaces, client and server."""
        self._out = []
        serv_name = camel_case(service.name)

        self._section_comment(serv_name + " Client Interface")
        self._interface(file, service, _CLIENT)

        self._section_comment(serv_name + " ServerImpl Interface")
        self._interface(file, service, _SERVER_IMPL)

        self._section_comment(serv_name + " Server Interface")
        self._interface(file, service, _SERVER)

        self._section_comment(serv_name + " Client")
        self._client(service)

        self._section_comment(serv_name + " Server")
        self._server(service)

        text = "".join(self._out)
        self._out = []
        return text

    def _interface(self, file, service, iface: str) -> None:
        serv_name = camel_case(service.name)
        self._service_comments(file, service)

        topics = TopicSlice() if iface == _SERVER_IMPL else self.typed_topics(service)

        self._p("type ", serv_name, iface, topics.format_type_param_constraints(), " interface {")
        for method in service.method:
            opts = self.options_for(method)
            if (iface == _SERVER_IMPL and opts.subscription) or (
                iface == _SERVER and not opts.subscription and not opts.topics
            ):
                continue
            self._method_comments(file, service, method)
            if iface == _CLIENT:
                self._client_signature(method, opts)
            elif iface == _SERVER_IMPL:
                self._server_impl_signature(method, opts)
            else:
                self._server_signature(method, opts)

        if iface == _SERVER:
            for group in self.topic_groups(service):
                params = group.topics.format_params()
                self._p("  RegisterAll", group.type_name, "Topics(", params, ") error")
                self._p("  DeregisterAll", group.type_name, "Topics(", params, ")")
            self._p()
            self._p("  // Close and wait for pending RPCs to complete")
            self._p("  Shutdown()")
            self._p()
            self._p("  // Close immediately, without waiting for pending RPCs")
            self._p("  Kill()")
        elif iface == _CLIENT:
            self._p("  // Close immediately, without waiting for pending RPCs")
            self._p("  Close()")
        self._p("}")

    def _client_signature(self, method, opts: MethodOptions) -> None:
        meth_name = camel_case(method.name)
        input_type = self.type_name(method.input_type)
        output_type = self.type_name(method.output_type)
        psrpc = self._pkg("psrpc")

        self._w("  Subscribe" if opts.subscription else "  ")
        self._w(meth_name, "(ctx ", self._pkg("context"), ".Context")
        if opts.topics:
            self._w(", ", topics_for_method(opts).format_params())
        if opts.subscription:
            self._p(") (", psrpc, ".Subscription[*", output_type, "], error)")
        elif opts.stream:
            self._p(
                ", opts ...", psrpc, ".RequestOption) (", psrpc,
                ".ClientStream[*", input_type, ", *", output_type, "], error)",
            )
        elif opts.type is Routing.MULTI:
            self._p(
                ", req *", input_type, ", opts ...", psrpc, ".RequestOption) (<-chan *",
                psrpc, ".Response[*", output_type, "], error)",
            )
        else:
            self._p(
                ", req *", input_type, ", opts ...", psrpc, ".RequestOption) (*",
                output_type, ", error)",
            )
        self._p()

    def _server_impl_signature(self, method, opts: MethodOptions) -> None:
        meth_name = camel_case(method.name)
        input_type = self.type_name(method.input_type)
        output_type = self.type_name(method.output_type)

        if opts.stream:
            self._p(
                "  ", meth_name, "(", self._pkg("psrpc"), ".ServerStream[*", output_type,
                ", *", input_type, "]) error",
            )
            if opts.type is Routing.AFFINITY:
                self._p("  ", meth_name, "Affinity(context.Context) float32")
        else:
            self._p(
                "  ", meth_name, "(", self._pkg("context"), ".Context, *", input_type,
                ") (*", output_type, ", error)",
            )
            if opts.type is Routing.AFFINITY:
                self._p("  ", meth_name, "Affinity(context.Context, *", input_type, ") float32")
        self._p()

    def _server_signature(self, method, opts: MethodOptions) -> None:
        meth_name = camel_case(method.name)
        output_type = self.type_name(method.output_type)
        topics = topics_for_method(opts)

        if opts.subscription:
            self._w("  Publish", meth_name, "(ctx ", self._pkg("context"), ".Context")
            if opts.topics:
                self._w(", ", topics.format_params())
            self._p(", msg *", output_type, ") error")
            self._p()
        else:
            self._p("  Register", meth_name, "Topic(", topics.format_params(), ") error")
            self._p("  Deregister", meth_name, "Topic(", topics.format_params(), ")")

    def _register_method(self, method, opts: MethodOptions) -> None:
        flags = (
            opts.type is Routing.AFFINITY,
            opts.type is Routing.MULTI,
            require_claim(opts),
            opts.type is Routing.QUEUE,
        )
        self._p(
            '  sd.RegisterMethod("', camel_case(method.name), '", ',
            ", ".join(str(bool(flag)).lower() for flag in flags), ")",
        )

    def _client(self, service) -> None:
        serv_name = camel_case(service.name)
        serv_topics = self.typed_topics(service)
        constraints = serv_topics.format_type_param_constraints()
        type_params = serv_topics.format_type_params()
        struct_name = _unexported(serv_name) + "Client"
        new_client_func = "New" + serv_name + "Client"
        psrpc = self._pkg("psrpc")
        client = self._pkg("client")

        self._p("type ", struct_name, constraints, " struct {")
        self._p("  client *", client, ".RPCClient")
        self._p("}")
        self._p()

        self._p(
            "// ", new_client_func, " creates a psrpc client that implements the ",
            serv_name, "Client interface.",
        )
        self._p(
            "func ", new_client_func, constraints, "(bus ", psrpc, ".MessageBus, opts ...",
            psrpc, ".ClientOption) (", serv_name, "Client", type_params, ", error) {",
        )
        self._p("  sd := &", self._pkg("info"), ".ServiceDefinition{")
        self._p('    Name: "', serv_name, '",')
        self._p("    ID:   ", self._pkg("rand"), ".NewClientID(),")
        self._p("  }")
        self._p()

        for method in service.method:
            self._register_method(method, self.options_for(method))

        constructor = "NewRPCClient"
        if any(self.options_for(m).stream for m in service.method):
            constructor = "NewRPCClientWithStreams"
        self._p()
        self._p("  rpcClient, err := ", client, ".", constructor, "(sd, bus, opts...)")
        self._p("  if err != nil {")
        self._p("    return nil, err")
        self._p("  }")
        self._p()
        self._p("  return &", struct_name, type_params, "{")
        self._p("    client: rpcClient,")
        self._p("  }, nil")
        self._p("}")
        self._p()

        for method in service.method:
            meth_name = camel_case(method.name)
            input_type = self.type_name(method.input_type)
            output_type = self.type_name(method.output_type)
            opts = self.options_for(method)
            topics = topics_for_method(opts)
            topic_slice = topics.format_cast_to_string_slice()

            self._w("func (c *", struct_name, type_params)
            self._w(") Subscribe" if opts.subscription else ") ")
            self._w(meth_name, "(ctx ", self._pkg("context"), ".Context")
            if opts.topics:
                self._w(", ", topics.format_params())
            if opts.subscription:
                self._p(") (", psrpc, ".Subscription[*", output_type, "], error) {")
            elif opts.stream:
                self._p(
                    ", opts ...", psrpc, ".RequestOption) (", psrpc, ".ClientStream[*",
                    input_type, ", *", output_type, "], error) {",
                )
            else:
                self._w(", req *", input_type, ", opts ...", psrpc, ".RequestOption")
                if opts.type is Routing.MULTI:
                    self._p(") (<-chan *", psrpc, ".Response[*", output_type, "], error) {")
                else:
                    self._p(") (*", output_type, ", error) {")

            self._w("  return ", client)
            if opts.subscription:
                self._w(".Join[*" if opts.type is Routing.MULTI else ".JoinQueue[*")
                self._p(output_type, '](ctx, c.client, "', meth_name, '", ', topic_slice, ")")
            elif opts.stream:
                self._p(
                    ".OpenStream[*", input_type, ", *", output_type, '](ctx, c.client, "',
                    meth_name, '", ', topic_slice, ", opts...)",
                )
            else:
                self._w(".RequestMulti[*" if opts.type is Routing.MULTI else ".RequestSingle[*")
                self._w(output_type, '](ctx, c.client, "', meth_name, '", ', topic_slice)
                self._p(", req, opts...)")
            self._p("}")
            self._p()

        self._p("func (s *", struct_name, type_params, ") Close() {")
        self._p("  s.client.Close()")
        self._p("}")
        self._p()

    def _server(self, service) -> None:
        serv_name = camel_case(service.name)
        serv_topics = self.typed_topics(service)
        constraints = serv_topics.format_type_param_constraints()
        type_params = serv_topics.format_type_params()
        serv_struct = _unexported(serv_name) + "Server"
        psrpc = self._pkg("psrpc")
        server = self._pkg("server")

        self._p("type ", serv_struct, constraints, " struct {")
        self._p("  svc ", serv_name, "ServerImpl")
        self._p("  rpc *", server, ".RPCServer")
        self._p("}")
        self._p()

        self._p("// New", serv_name, "Server builds a RPCServer that will route requests")
        self._p("// to the corresponding method in the provided svc implementation.")
        self._p(
            "func New", serv_name, "Server", constraints, "(svc ", serv_name,
            "ServerImpl, bus ", psrpc, ".MessageBus, opts ...", psrpc, ".ServerOption) (",
            serv_name, "Server", type_params, ", error) {",
        )
        self._p("  sd := &", self._pkg("info"), ".ServiceDefinition{")
        self._p('    Name: "', serv_name, '",')
        self._p("    ID:   ", self._pkg("rand"), ".NewServerID(),")
        self._p("  }")
        self._p()
        self._p("  s := ", server, ".NewRPCServer(sd, bus, opts...)")
        self._p()

        err_var = False
        for method in service.method:
            opts = self.options_for(method)
            meth_name = camel_case(method.name)
            self._register_method(method, opts)

            if opts.subscription or opts.topics:
                continue

            if not err_var:
                self._p("  var err error")
                err_var = True

            register_func = "RegisterStreamHandler" if opts.stream else "RegisterHandler"
            self._w("  err = ", server, ".", register_func, '(s, "', meth_name, '", nil, svc.', meth_name)
            if opts.type is Routing.AFFINITY:
                self._w(", svc.", meth_name, "Affinity")
            else:
                self._w(", nil")
            self._p(")")
            self._p("  if err != nil {")
            self._p("    s.Close(false)")
            self._p("    return nil, err")
            self._p("  }")
            self._p()

        self._p("  return &", serv_struct, type_params, "{")
        self._p("    svc: svc,")
        self._p("    rpc: s,")
        self._p("  }, nil")
        self._p("}")
        self._p()

        receiver = "func (s *" + serv_struct + type_params
        for method in service.method:
            opts = self.options_for(method)
            if not opts.subscription and not opts.topics:
                continue

            meth_name = camel_case(method.name)
            output_type = self.type_name(method.output_type)
            topics = topics_for_method(opts)
            topic_slice = topics.format_cast_to_string_slice()

            if opts.subscription:
                self._w(receiver, ") Publish", meth_name, "(ctx ", self._pkg("context"), ".Context")
                if opts.topics:
                    self._w(", ", topics.format_params())
                self._p(", msg *", output_type, ") error {")
                self._p('  return s.rpc.Publish(ctx, "', meth_name, '", ', topic_slice, ", msg)")
                self._p("}")
                self._p()
            else:
                register_func = "RegisterStreamHandler" if opts.stream else "RegisterHandler"
                self._p(receiver, ") Register", meth_name, "Topic(", topics.format_params(), ") error {")
                self._w(
                    "  return ", server, ".", register_func, '(s.rpc, "', meth_name, '", ',
                    topic_slice, ", s.svc.", meth_name,
                )
                if opts.type is Routing.AFFINITY:
                    self._w(", s.svc.", meth_name, "Affinity")
                else:
                    self._w(", nil")
                self._p(")")
                self._p("}")
                self._p()
                self._p(receiver, ") Deregister", meth_name, "Topic(", topics.format_params(), ") {")
                self._p('  s.rpc.DeregisterHandler("', meth_name, '", ', topic_slice, ")")
                self._p("}")
                self._p()

        for group in self.topic_groups(service):
            var_names = ", ".join(group.topics.var_names())
            params = group.topics.format_params()
            self._p(receiver, ") all", group.type_name, "TopicRegisterers() ", server, ".RegistererSlice {")
            self._p("  return ", server, ".RegistererSlice{")
            for meth_name in group.meth_names:
                self._p(
                    "    ", server, ".NewRegisterer(s.Register", meth_name,
                    "Topic, s.Deregister", meth_name, "Topic),",
                )
            self._p("  }")
            self._p("}")
            self._p()
            self._p(receiver, ") RegisterAll", group.type_name, "Topics(", params, ") error {")
            self._p("  return s.all", group.type_name, "TopicRegisterers().Register(", var_names, ")")
            self._p("}")
            self._p()
            self._p(receiver, ") DeregisterAll", group.type_name, "Topics(", params, ") {")
            self._p("  s.all", group.type_name, "TopicRegisterers().Deregister(", var_names, ")")
            self._p("}")
            self._p()

        self._p(receiver, ") Shutdown() {")
        self._p("  s.rpc.Close(false)")
        self._p("}")
        self._p()
        self._p(receiver, ") Kill() {")
        self._p("  s.rpc.Close(true)")
        self._p("}")
        self._p()