# psrpcgen

`psrpcgen` is a `protoc` plugin. It reads protobuf service definitions and
writes typed pub/sub RPC client and server stubs in Go, one `.psrpc.go` file
per input `.proto` file that declares at least one service.

The package also holds helpers for the naming and configuration that such
stubs work with:

- bus channel names (`psrpcgen.channels`),
- random client, server, request and stream IDs (`psrpcgen.ids`),
- incoming headers and outgoing metadata on an immutable context (`psrpcgen.metadata`),
- request, server and stream option callables (`psrpcgen.options`),
- grouped topic registration with rollback (`psrpcgen.registration`).

## Installation

```
pip install psrpcgen
```

This installs the `protoc-gen-psrpc` command. When `protoc` can find it on
your `PATH`, it is picked up through the `--psrpc_out` flag.

## Generating code

```
protoc --psrpc_out=. --psrpc_opt=paths=source_relative service.proto
```

The plugin takes a comma-separated list of `key=value` parameters:

| Parameter | Meaning |
| --- | --- |
| `paths=import` | Default. The output directory is taken from the file's `go_package` option. |
| `paths=source_relative` | The output file is placed next to the `.proto` file. |
| `module=<prefix>` | Removes this prefix from the `go_package` import path when building the output path. |
| `M<file>=<import path>` | Maps a `.proto` file to an import path. |
| `go_import_mapping@<file>=<import path>` | Same as `M`. |
| `import_prefix=<prefix>` | Adds this prefix to imported package paths. |

An unknown parameter, or one without a value, stops the run: the plugin
writes `error:` and the message to standard error and exits with status 1.

To print the plugin version and exit:

```
protoc-gen-psrpc --version
```

## Using the generator from Python

`psrpcgen.generator.Generator` turns a
`google.protobuf.compiler.plugin_pb2.CodeGeneratorRequest` into a
`CodeGeneratorResponse`. It takes an optional `options_for` callable that
maps each method descriptor to a `psrpcgen.gen_options.MethodOptions`
(routing as a `Routing` value, `subscription`, `stream`, `topics` and
`TopicParams`):

```python
from psrpcgen.gen_options import MethodOptions, Routing
from psrpcgen.generator import Generator

def options_for(method):
    if method.name == "Broadcast":
        return MethodOptions(type=Routing.MULTI)
    return MethodOptions()

response = Generator(options_for).generate(request)
```

Failures are raised as `psrpcgen.plugin_io.GeneratorError`.
`psrpcgen.plugin_io.run(generator, stdin, stdout)` performs one
request/response exchange over binary streams and returns an exit status.

## Using the helpers

### Parsing plugin parameters

```python
from psrpcgen.command_line import parse_command_line_params

params = parse_command_line_params("paths=source_relative,module=example.com/mod")
params.paths    # "source_relative"
params.module   # "example.com/mod"
```

### Channel names

```python
from psrpcgen.channels import ServiceDefinition, get_response_channel

sd = ServiceDefinition(name="foo", id="CLI_abc")
sd.register_method("bar", False, False, True, False)
info = sd.get_info("bar", ["a", "b"])

info.rpc_channel().legacy   # "foo|bar|a|b|REQ"
info.rpc_channel().server   # "SRV.foo.a.b"
info.handler_key()          # "bar.a.b"
get_response_channel("foo", "CLI_abc").server   # "CLI.foo.CLI_abc.RES"
```

`get_info` raises `KeyError` for a method that was not registered.

### Identifiers

```python
from psrpcgen.ids import new_request_id

new_request_id()   # "REQ_" followed by 12 random alphanumeric characters
```

### Outgoing metadata

```python
from psrpcgen.metadata import (
    Context,
    append_metadata_to_outgoing_context,
    outgoing_context_metadata,
)

ctx = append_metadata_to_outgoing_context(Context(), "trace", "abc")
outgoing_context_metadata(ctx)   # {"trace": "abc"}
```

### Topic registration

`psrpcgen.registration.RegistererSlice` is a list of `Registerer` pairs.
`register(*args)` calls each `register` in turn; if one raises, those already
registered are deregistered and the exception propagates.

## What the package does not do

- The `protoc-gen-psrpc` command does not read per-method options from the
  `.proto` files. Every method is generated with the default `MethodOptions`
  (single-server routing, no topics, no streams, no subscriptions). Other
  options can only be supplied through `Generator(options_for)` from Python.
- Generated code imports its runtime from `psrpcgen.generator.RUNTIME_MODULE`
  (`example.com/psrpc`); set `Generator.runtime_module` to point it elsewhere.
  The runtime itself (message bus, RPC client and server) is not part of this
  package.
- The output is laid out with tabs and checked for balanced brackets, but it
  is not run through a full Go formatter.

## Running the tests

```
pip install "psrpcgen[test]"
pytest
```