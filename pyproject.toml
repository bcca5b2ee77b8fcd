[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "psrpcgen"
version = "0.6.0"
description = "protoc plugin that generates typed pub/sub RPC client and server stubs, with the channel, ID, metadata and option helpers they rely on"
requires-python = ">=3.10"
keywords = ["protoc", "protobuf", "plugin", "code generation", "rpc", "pubsub"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Code Generators",
]
dependencies = [
    "protobuf",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
protoc-gen-psrpc = "psrpcgen.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["psrpcgen"]

[tool.pytest.ini_options]
addopts = "-ra"
