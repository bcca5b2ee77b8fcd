import gzip
import re

import pytest
from google.protobuf import descriptor_pb2
from google.protobuf.compiler import plugin_pb2

from psrpcgen.gen_options import MethodOptions, Routing, TopicParams
from psrpcgen.generator import Generator, deduce_gen_pkg_name
from psrpcgen.plugin_io import GeneratorError


def _file(name, package, go_package=None, messages=()):
    f = descriptor_pb2.FileDescriptorProto(name=name, package=package)
    if go_package is not None:
        f.options.go_package = go_package
    for m in messages:
        f.message_type.add(name=m)
    return f


def _service_file(go_package="example.com/foo;foo", input_type=".foo.Req"):
    f = _file("foo.proto", "foo", go_package, ["Req", "Res"])
    svc = f.service.add(name="my_service")
    svc.method.add(name="do_thing", input_type=input_type, output_type=".foo.Res")
    return f


def _request(files, to_generate=("foo.proto",), parameter=None):
    req = plugin_pb2.CodeGeneratorRequest()
    req.file_to_generate.extend(to_generate)
    for f in files:
        req.proto_file.add().CopyFrom(f)
    if parameter is not None:
        req.parameter = parameter
    return req


def test_invalid_parameter_fails():
    with pytest.raises(GeneratorError, match="could not parse parameters"):
        Generator().generate(plugin_pb2.CodeGeneratorRequest(parameter="invalid"))


@pytest.mark.parametrize(
    "source_relative, module_prefix, fname, gopkg, expected",
    [
        (True, "", "rpc/v1/service.proto", "example.com/module/package/rpc/v1", "rpc/v1/service.psrpc.go"),
        (False, "example.com/module/package", "rpc/v1/service.proto",
         "example.com/module/package/rpc/v1", "rpc/v1/service.psrpc.go"),
        (False, "example.com/module/package/", "rpc/v1/service.proto",
         "example.com/module/package/rpc/v1", "rpc/v1/service.psrpc.go"),
    ],
)
def test_go_file_name(source_relative, module_prefix, fname, gopkg, expected):
    g = Generator()
    g.source_relative_paths = source_relative
    g.module_prefix = module_prefix
    f = descriptor_pb2.FileDescriptorProto(name=fname)
    f.options.go_package = gopkg
    assert g.go_file_name(f) == expected


def test_register_package_name_numbers_duplicates():
    g = Generator()
    assert g.register_package_name("client") == "client"
    assert g.register_package_name("client") == "client1"
    assert g.register_package_name("client") == "client2"


def test_deduce_gen_pkg_name_conflicting_go_package():
    with pytest.raises(GeneratorError, match="conflicting go_package"):
        deduce_gen_pkg_name([_file("a.proto", "x", "a"), _file("b.proto", "x", "b")])


def test_deduce_gen_pkg_name_conflicting_packages():
    with pytest.raises(GeneratorError, match="conflicting package names"):
        deduce_gen_pkg_name([_file("a.proto", "one"), _file("b.proto", "two")])


def test_deduce_gen_pkg_name_cleans_implicit_name():
    assert deduce_gen_pkg_name([_file("a.proto", "foo.bar"), _file("b.proto", "foo.bar")]) == "foo_bar"


def test_deduce_gen_pkg_name_prefers_explicit():
    files = [_file("a.proto", "foo"), _file("b.proto", "foo", "example.com/x;baz")]
    assert deduce_gen_pkg_name(files) == "baz"


def test_generate_basic_service():
    resp = Generator().generate(_request([_service_file()]))
    assert resp.supported_features == plugin_pb2.CodeGeneratorResponse.FEATURE_PROTO3_OPTIONAL
    assert len(resp.file) == 1
    out = resp.file[0]
    assert out.name == "example.com/foo/foo.psrpc.go"
    content = out.content
    assert content.startswith(
        "// Code generated by protoc-gen-psrpc v0.6.0, DO NOT EDIT.\n// source: foo.proto\n"
    )
    assert "package foo\n" in content
    assert "var _ = version.PsrpcVersion_0_6\n" in content
    assert "type MyServiceClient interface {\n" in content
    assert "\tDoThing(ctx context.Context, req *Req, opts ...psrpc.RequestOption) (*Res, error)\n" in content
    assert 'sd.RegisterMethod("DoThing", false, false, true, false)' in content
    assert "client.RequestSingle[*Res]" in content


def test_file_without_service_produces_nothing():
    f = _file("foo.proto", "foo", None, ["Req"])
    resp = Generator().generate(_request([f]))
    assert len(resp.file) == 0


def test_embedded_descriptor_round_trips():
    f = _service_file()
    loc = f.source_code_info.location.add()
    loc.path.append(2)
    loc.leading_comments = " hello\n"
    resp = Generator().generate(_request([f]))
    content = resp.file[0].content
    assert "// hello\n" in content
    section = content.split("var psrpcFileDescriptor0 = []byte{", 1)[1].split("}", 1)[0]
    data = bytes(int(h, 16) for h in re.findall(r"0x([0-9a-f]{2})", section))
    parsed = descriptor_pb2.FileDescriptorProto.FromString(gzip.decompress(data))
    expected = descriptor_pb2.FileDescriptorProto()
    expected.CopyFrom(f)
    expected.ClearField("source_code_info")
    assert parsed == expected


def test_dependency_import_and_type_prefix():
    other = _file("other.proto", "other", "example.com/other", ["Thing"])
    main = _service_file(input_type=".other.Thing")
    resp = Generator().generate(_request([other, main]))
    content = resp.file[0].content
    assert 'import other "example.com/other"' in content
    assert "req *other.Thing" in content


def test_dependency_package_alias_avoids_runtime_names():
    other = _file("dep.proto", "client", "example.com/dep", ["Thing"])
    g = Generator()
    g.generate(_request([other, _service_file()]))
    assert g.go_type_name(".client.Thing") == "client1.Thing"


def test_nested_message_type_name():
    f = _service_file()
    f.message_type.add(name="Outer").nested_type.add(name="inner_msg")
    g = Generator()
    g.generate(_request([f]))
    assert g.go_type_name(".foo.Outer.inner_msg") == "Outer_InnerMsg"


def test_unknown_message_fails():
    with pytest.raises(GeneratorError, match="could not find message for .foo.Missing"):
        Generator().generate(_request([_service_file(input_type=".foo.Missing")]))


def test_missing_file_to_generate_fails():
    with pytest.raises(GeneratorError, match="could not find file named missing.proto"):
        Generator().generate(_request([_service_file()], to_generate=("missing.proto",)))


def test_multi_routing_from_options():
    g = Generator(lambda m: MethodOptions(type=Routing.MULTI))
    content = g.generate(_request([_service_file()])).file[0].content
    assert "client.RequestMulti[*Res]" in content
    assert "(<-chan *psrpc.Response[*Res], error)" in content
    assert 'sd.RegisterMethod("DoThing", false, true, false, false)' in content


def test_topic_group_mismatch_fails():
    f = _service_file()
    f.service[0].method.add(name="other", input_type=".foo.Req", output_type=".foo.Res")

    def options_for(method):
        names = ["a"] if method.name == "do_thing" else ["b"]
        return MethodOptions(topics=True, topic_params=TopicParams(names=names, group="g"))

    with pytest.raises(GeneratorError, match='topic group "g"'):
        Generator(options_for).generate(_request([f]))


def test_source_relative_parameter():
    resp = Generator().generate(_request([_service_file()], parameter="paths=source_relative"))
    assert resp.file[0].name == "foo.psrpc.go"