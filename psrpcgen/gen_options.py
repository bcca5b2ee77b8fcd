"""Per-method generator options and the topic parameters derived from them."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from psrpcgen.stringutils import camel_case, lower_camel_case


class Routing(enum.Enum):
    """How requests for a method are routed to servers."""

    DEFAULT = 0
    AFFINITY = 1
    MULTI = 2
    QUEUE = 3


@dataclass
class TopicParams:
    """Topic settings of a method."""

    names: list[str] = field(default_factory=list)
    typed: bool = False
    single_server: bool = False
    group: str = ""


@dataclass
class MethodOptions:
    """Generator options attached to an RPC method."""

    type: Routing = Routing.DEFAULT
    subscription: bool = False
    stream: bool = False
    topics: bool = False
    topic_params: TopicParams | None = None


@dataclass(frozen=True)
class Topic:
    """One topic parameter of a generated method."""

    var_name: str
    type_name: str
    typed: bool = False

    def format_cast_to_string(self) -> str:
        """Expression converting the parameter to a plain string."""
        if not self.typed:
            return self.var_name
        return f"string({self.var_name})"


class TopicSlice(list):
    """An ordered list of topic parameters with formatting helpers."""

    def type_names(self) -> list[str]:
        """Type names of the topics, in order."""
        return [t.type_name for t in self]

    def var_names(self) -> list[str]:
        """Variable names of the topics, in order."""
        return [t.var_name for t in self]

    def format_type_param_constraints(self) -> str:
        """Type parameter list with constraints, empty for untyped topics."""
        if not self or not self[0].typed:
            return ""
        return f"[{', '.join(self.type_names())} ~string]"

    def format_type_params(self) -> str:
        """Type argument list, empty for untyped topics."""
        if not self or not self[0].typed:
            return ""
        return f"[{', '.join(self.type_names())}]"

    def format_params(self) -> str:
        """Parameter declarations, comma separated."""
        return ", ".join(f"{t.var_name} {t.type_name}" for t in self)

    def format_type_names(self) -> str:
        """Type names, comma separated."""
        return ", ".join(self.type_names())

    def format_cast_to_string_slice(self) -> str:
        """A string slice literal of the topics, or ``nil`` when there are none."""
        if not self:
            return "nil"
        return "[]string{" + ", ".join(t.format_cast_to_string() for t in self) + "}"


@dataclass
class TopicGroup:
    """Methods sharing the same topic parameters, registered together."""

    meth_names: list[str]
    type_name: str
    topics: TopicSlice


def require_claim(opts: MethodOptions) -> bool:
    """Whether a request must be claimed by exactly one server."""
    single_server = opts.topic_params is not None and opts.topic_params.single_server
    return opts.type is not Routing.MULTI and not single_server


def topics_for_method(opts: MethodOptions) -> TopicSlice:
    """Topic parameters of a method with the given options."""
    if not opts.topics:
        return TopicSlice()
    params = opts.topic_params
    if params is None or not params.names:
        return TopicSlice([Topic("topic", "string", False)])
    topics = TopicSlice()
    for name in params.names:
        type_name = f"{camel_case(name)}TopicType" if params.typed else "string"
        topics.append(Topic(lower_camel_case(name), type_name, params.typed))
    return topics