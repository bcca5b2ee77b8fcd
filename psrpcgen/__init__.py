"""protoc plugin that writes typed pub/sub RPC stubs, with channel, ID, metadata and option helpers."""

__version__ = "0.6.0"