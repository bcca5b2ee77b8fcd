import pytest

from psrpcgen.command_line import (
    CommandLineParams,
    ParameterError,
    parse_command_line_params,
)


@pytest.mark.parametrize(
    "parameter, expected",
    [
        ("", CommandLineParams()),
        (
            "import_prefix=github.com/example/repo",
            CommandLineParams(import_prefix="github.com/example/repo"),
        ),
        (
            "Mrpcutil/empty.proto=github.com/example/rpcutil",
            CommandLineParams(
                import_map={"rpcutil/empty.proto": "github.com/example/rpcutil"}
            ),
        ),
        (
            "Mrpcutil/empty.proto=github.com/example/rpcutil,"
            "Mrpc/haberdasher/service.proto=github.com/example/rpc/haberdasher",
            CommandLineParams(
                import_map={
                    "rpcutil/empty.proto": "github.com/example/rpcutil",
                    "rpc/haberdasher/service.proto": "github.com/example/rpc/haberdasher",
                }
            ),
        ),
        (
            "go_import_mapping@rpcutil/empty.proto=github.com/example/rpcutil",
            CommandLineParams(
                import_map={"rpcutil/empty.proto": "github.com/example/rpcutil"}
            ),
        ),
        (
            "go_import_mapping@rpcutil/empty.proto=github.com/example/rpcutil,"
            "go_import_mapping@rpc/haberdasher/service.proto=github.com/example/rpc/haberdasher",
            CommandLineParams(
                import_map={
                    "rpcutil/empty.proto": "github.com/example/rpcutil",
                    "rpc/haberdasher/service.proto": "github.com/example/rpc/haberdasher",
                }
            ),
        ),
        ("paths=import", CommandLineParams()),
        ("paths=source_relative", CommandLineParams(paths="source_relative")),
        ("module=foo/bar/fizz", CommandLineParams(module="foo/bar/fizz")),
    ],
    ids=[
        "no parameters",
        "import_prefix parameter",
        "single M import",
        "multiple M imports",
        "single go_import_mapping",
        "multiple go_import_mapping",
        "paths import",
        "paths source_relative",
        "module parameter",
    ],
)
def test_parse_valid(parameter, expected):
    assert parse_command_line_params(parameter) == expected


@pytest.mark.parametrize(
    "parameter, message",
    [
        ("kkk=vvv", "invalid command line flag kkk=vvv"),
        (
            "import_prefix",
            'invalid parameter "import_prefix": expected format of parameter to be k=v',
        ),
        (
            "import_prefix=",
            'invalid parameter "import_prefix": expected format of parameter to be k=v',
        ),
        ("paths=invalidstuff", "invalid command line flag paths=invalidstuff"),
    ],
    ids=["unknown", "no equals sign", "no value", "paths invalid"],
)
def test_parse_errors(parameter, message):
    with pytest.raises(ParameterError) as exc_info:
        parse_command_line_params(parameter)
    assert str(exc_info.value) == message


def test_empty_items_are_skipped():
    assert parse_command_line_params(",module=foo,,") == CommandLineParams(module="foo")