import pytest
from google.protobuf import descriptor_pb2

from psrpcgen.gen_options import MethodOptions, Routing, TopicParams
from psrpcgen.plugin_io import GeneratorError
from psrpcgen.service_writer import ServiceWriter
from psrpcgen.stringutils import camel_case
from psrpcgen.typemap import Registry

PACKAGES = ["client", "context", "info", "psrpc", "rand", "server", "version"]


def make_file(methods, service_name="Greeter"):
    f = descriptor_pb2.FileDescriptorProto(name="greeter.proto", package="demo")
    f.message_type.add(name="Req")
    f.message_type.add(name="Res")
    svc = f.service.add(name=service_name)
    for name in methods:
        svc.method.add(name=name, input_type=".demo.Req", output_type=".demo.Res")
    return f, f.service[0]


def make_writer(f, opts):
    return ServiceWriter(
        Registry([f]),
        {name: name for name in PACKAGES},
        lambda proto_name: proto_name.rsplit(".", 1)[-1],
        lambda method: opts.get(method.name, MethodOptions()),
    )


def interface_block(text, name):
    start = text.index(f"type {name} interface {{")
    end = text.index("}\n", start)
    return text[start:end]


def test_plain_method_uses_single_request():
    f, svc = make_file(["SayHello"])
    text = make_writer(f, {}).write_service(f, svc)
    assert "type GreeterClient interface {" in text
    assert "RequestSingle[*Res]" in text
    assert "NewRPCClient" in text
    assert "NewRPCClientWithStreams" not in text
    assert "RegisterHandler" in text


def test_stream_method_enables_streams():
    f, svc = make_file(["Chat"])
    text = make_writer(f, {"Chat": MethodOptions(stream=True)}).write_service(f, svc)
    assert "NewRPCClientWithStreams" in text
    assert "RegisterStreamHandler" in text
    assert "OpenStream[*Req, *Res]" in text


def test_multi_method():
    f, svc = make_file(["Broadcast"])
    opts = {"Broadcast": MethodOptions(type=Routing.MULTI)}
    text = make_writer(f, opts).write_service(f, svc)
    assert "RequestMulti[*Res]" in text
    assert 'sd.RegisterMethod("Broadcast", false, true, false, false)' in text


def test_affinity_registration():
    f, svc = make_file(["Pick"])
    opts = {"Pick": MethodOptions(type=Routing.AFFINITY)}
    text = make_writer(f, opts).write_service(f, svc)
    assert 'sd.RegisterMethod("Pick", true, false, true, false)' in text
    assert "svc.PickAffinity" in text


def test_subscription_absent_from_server_impl():
    f, svc = make_file(["News", "SayHello"])
    opts = {"News": MethodOptions(subscription=True, type=Routing.MULTI)}
    text = make_writer(f, opts).write_service(f, svc)
    impl = interface_block(text, "GreeterServerImpl")
    assert "News" not in impl
    assert "SayHello" in impl
    assert "PublishNews" in interface_block(text, "GreeterServer")
    assert "SubscribeNews" in text


def test_topic_group_members_collected():
    f, svc = make_file(["A", "B"])
    params = TopicParams(names=["region"], group="region")
    opts = {"A": MethodOptions(topics=True, topic_params=params),
            "B": MethodOptions(topics=True, topic_params=params)}
    writer = make_writer(f, opts)
    groups = writer.topic_groups(svc)
    assert len(groups) == 1
    assert groups[0].meth_names == ["A", "B"]
    assert groups[0].type_name == camel_case("region")
    text = writer.write_service(f, svc)
    assert "RegisterAllRegionTopics" in text


def test_topic_group_mismatch_raises():
    f, svc = make_file(["A", "B"])
    opts = {
        "A": MethodOptions(topics=True, topic_params=TopicParams(names=["x"], group="g")),
        "B": MethodOptions(topics=True, topic_params=TopicParams(names=["y"], group="g")),
    }
    with pytest.raises(GeneratorError):
        make_writer(f, opts).topic_groups(svc)


def test_typed_topics_deduplicated():
    f, svc = make_file(["A", "B"])
    params = TopicParams(names=["region"], typed=True)
    opts = {"A": MethodOptions(topics=True, topic_params=params),
            "B": MethodOptions(topics=True, topic_params=params)}
    writer = make_writer(f, opts)
    topics = writer.typed_topics(svc)
    assert len(topics) == 1
    text = writer.write_service(f, svc)
    assert topics.format_type_param_constraints() in text


def test_service_comments_printed():
    f, svc = make_file(["SayHello"])
    loc = f.source_code_info.location.add()
    loc.path.extend([6, 0])
    loc.leading_comments = " Greets people\n"
    text = make_writer(f, {}).write_service(f, svc)
    assert "// Greets people\n" in text


def test_section_comments_and_lifecycle():
    f, svc = make_file(["SayHello"])
    text = make_writer(f, {}).write_service(f, svc)
    title = "Greeter Client Interface"
    assert f"// {'=' * len(title)}\n// {title}\n" in text
    assert "s.rpc.Close(true)" in text
    assert "s.rpc.Close(false)" in text


def test_err_var_declared_once_and_output_repeatable():
    f, svc = make_file(["One", "Two"])
    writer = make_writer(f, {})
    first = writer.write_service(f, svc)
    second = writer.write_service(f, svc)
    assert first.count("  var err error") == 1
    assert first == second