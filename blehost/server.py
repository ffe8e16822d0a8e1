"""GATT server definitions: services gathered into one attribute table."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from .characteristic import MacroError, parse_meta
from .service import ServiceDefinition, _integer_literal

DEFAULT_MUTEX_TYPE = "NoopRawMutex"


@dataclass
class ServerArgs:
    """Arguments of a ``gatt_server`` attribute."""

    mutex_type: str | None = None
    attribute_table_size: int | None = None

    @classmethod
    def parse(cls, text: str) -> ServerArgs:
        args = cls()
        for item in parse_meta(text):
            name = item.ident
            if name is None:
                raise MacroError("no ident")
            if name == "mutex_type":
                if item.value is None:
                    raise MacroError(
                        "mutex_type must be followed by `= [type]`. e.g. mutex_type = NoopRawMutex"
                    )
                args.mutex_type = item.value
            elif name == "attribute_table_size":
                if item.value is None:
                    raise MacroError(
                        "attribute_table_size must be followed by `= [size]`. "
                        "e.g. attribute_table_size = 32"
                    )
                size = _integer_literal(item.value)
                if size is None:
                    raise MacroError(
                        f"attribute_table_size must be an integer, found `{item.value}`"
                    )
                args.attribute_table_size = size
            else:
                raise MacroError(
                    f"Unsupported server property: '{name}'.\n"
                    "Supported properties are: mutex_type, attribute_table_size"
                )
        return args


@dataclass(frozen=True)
class ServerDefinition:
    """A GATT server: its services, mutex type and attribute table size."""

    name: str
    mutex_type: str
    attribute_table_size: int
    services: Mapping[str, ServiceDefinition]
    gap_attribute_count: int
    vis: str = ""

    @property
    def required_attributes(self) -> int:
        """Attributes needed by the GAP service plus every service."""
        return self.gap_attribute_count + sum(
            s.attribute_count for s in self.services.values()
        )


@dataclass
class ServerBuilder:
    """Gathers services into a ServerDefinition and checks the table size."""

    name: str
    arguments: ServerArgs
    services: Mapping[str, ServiceDefinition]
    gap_attribute_count: int
    vis: str = ""
    _services: dict[str, ServiceDefinition] = field(default_factory=dict, init=False)

    def __post_init__(self) -> None:
        self._services = dict(self.services)

    def build(self) -> ServerDefinition:
        """The finished server; raises MacroError if the table is too small."""
        required = self.gap_attribute_count + sum(
            s.attribute_count for s in self._services.values()
        )
        size = self.arguments.attribute_table_size
        if size is None:
            size = required
        if size < required:
            raise MacroError(
                "Specified attribute table size is insufficient. Please increase "
                "attribute_table_size or remove the argument entirely to allow automatic "
                "sizing of the attribute table."
            )
        return ServerDefinition(
            name=self.name,
            mutex_type=self.arguments.mutex_type or DEFAULT_MUTEX_TYPE,
            attribute_table_size=size,
            services=self._services,
            gap_attribute_count=self.gap_attribute_count,
            vis=self.vis,
        )


def gatt_server(
    args: str | ServerArgs,
    name: str,
    services: Mapping[str, ServiceDefinition],
    gap_attribute_count: int,
) -> ServerDefinition:
    """Build a server from its attribute arguments and its service fields."""
    server_args = ServerArgs.parse(args) if isinstance(args, str) else args
    return ServerBuilder(name, server_args, services, gap_attribute_count).build()