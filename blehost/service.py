"""GATT service definitions built from a service struct's fields."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field

from .characteristic import (
    AccessArgs,
    Attribute,
    Characteristic,
    Field,
    MacroError,
    MetaItem,
    UuidArg,
    parse_meta,
    split_characteristics,
)
from .uuid import InvalidUuid, Uuid

MIN_DESCRIPTOR_CAPACITY = 16

_INT_SUFFIX = r"(?:[iu](?:8|16|32|64|128|size))?"
_INT_LITERAL = re.compile(
    rf"(0x[0-9a-fA-F_]+|0o[0-7_]+|0b[01_]+|[0-9][0-9_]*){_INT_SUFFIX}"
)
_FLOAT_LITERAL = re.compile(
    r"[0-9][0-9_]*(?:\.[0-9_]*)?(?:[eE][+-]?[0-9_]+)?(?:f32|f64)?"
)
_OTHER_LITERAL = re.compile(r"true|false|b?'(?:[^'\\]|\\.)+'|b\"(?:[^\"\\]|\\.)*\"", re.DOTALL)
_WORDS = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|[0-9]+")


class CharacteristicProp(enum.Enum):
    """Properties a characteristic or descriptor can be given."""

    READ = "read"
    WRITE = "write"
    WRITE_WITHOUT_RESPONSE = "write_without_response"
    NOTIFY = "notify"
    INDICATE = "indicate"


def _integer_literal(text: str) -> int | None:
    """The value of a Rust-style integer literal, or None if ``text`` is not one."""
    match = _INT_LITERAL.fullmatch(text.strip())
    if match is None:
        return None
    digits = match.group(1).replace("_", "")
    if digits[:2] in ("0x", "0o", "0b"):
        if len(digits) == 2:
            return None
        return int(digits, 0)
    return int(digits, 10)


def _screaming_snake(name: str) -> str:
    return "_".join(word.upper() for word in _WORDS.findall(name))


def parse_arg_uuid(value: str) -> UuidArg:
    """Resolve a service ``uuid`` argument.

    String literals are parsed as UUIDs, integer literals as 16-bit UUIDs;
    any other expression is kept as text.
    """
    text = value.strip()
    literal = MetaItem("uuid", text).string_literal
    if literal is not None:
        try:
            return Uuid.from_string(literal)
        except InvalidUuid:
            raise MacroError(
                "Invalid UUID string.  Expect i.e. \"180f\" or "
                "\"0000180f-0000-1000-8000-00805f9b34fb\""
            ) from None
    number = _integer_literal(text)
    if number is not None:
        if number > 0xFFFF:
            raise MacroError("Invalid 16bit UUID literal.  Expect i.e. \"0x180f\"")
        return Uuid.uuid16(number)
    if _FLOAT_LITERAL.fullmatch(text) or _OTHER_LITERAL.fullmatch(text):
        raise MacroError(
            "Invalid UUID literal.  Expect i.e. \"180f\" or "
            "\"0000180f-0000-1000-8000-00805f9b34fb\""
        )
    return text


def access_properties(access: AccessArgs) -> list[CharacteristicProp]:
    """The properties switched on in ``access``, in their fixed order."""
    pairs = (
        (access.read, CharacteristicProp.READ),
        (access.write, CharacteristicProp.WRITE),
        (access.write_without_response, CharacteristicProp.WRITE_WITHOUT_RESPONSE),
        (access.notify, CharacteristicProp.NOTIFY),
        (access.indicate, CharacteristicProp.INDICATE),
    )
    return [prop for enabled, prop in pairs if enabled]


@dataclass
class ServiceArgs:
    """Arguments of a ``gatt_service`` attribute."""

    uuid: UuidArg

    @classmethod
    def parse(cls, text: str) -> ServiceArgs:
        uuid: UuidArg | None = None
        for item in parse_meta(text):
            if item.value is None:
                raise MacroError("Unexpected argument")
            name = item.ident
            if name is None:
                raise MacroError("Argument name is missing")
            if name != "uuid":
                raise MacroError(
                    f"Unsupported service property: '{name}'.\n"
                    "Supported properties are: uuid"
                )
            if uuid is not None:
                raise MacroError("UUID cannot be specified more than once")
            uuid = parse_arg_uuid(item.value)
        if uuid is None:
            raise MacroError(
                "Service must have a UUID (i.e. `#[gatt_service(uuid = '1234')]` or "
                "`#[gatt_service(uuid = service::BATTERY)]`)"
            )
        return cls(uuid)


def _top_level_parts(text: str) -> list[str] | None:
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    in_string = escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        elif depth == 0 and ch == ";":
            return None
        elif depth == 0 and ch == ",":
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return [p for p in parts if p.strip()]


def _literal_length(expr: str) -> int | None:
    """Byte length of a string literal or array literal, if it can be told."""
    text = expr.strip()
    literal = MetaItem("value", text).string_literal
    if literal is not None:
        return len(literal.encode("utf-8"))
    if text.startswith("[") and text.endswith("]"):
        parts = _top_level_parts(text[1:-1])
        return None if parts is None else len(parts)
    return None


@dataclass(frozen=True)
class DescriptorDefinition:
    """A descriptor attached to a characteristic.

    ``capacity`` is the size of its storage, at least 16 bytes; it is None
    when the value's length cannot be told from its expression.
    """

    uuid: UuidArg
    properties: tuple[CharacteristicProp, ...]
    value: str
    capacity: int | None
    store_name: str


@dataclass(frozen=True)
class CharacteristicDefinition:
    """A characteristic of a service, with its storage and descriptors.

    A ``default_value`` of None means the value type's own default.
    """

    name: str
    ty: str
    uuid: UuidArg
    properties: tuple[CharacteristicProp, ...]
    default_value: str | None
    store_name: str
    descriptors: tuple[DescriptorDefinition, ...] = ()
    doc_string: str = ""
    vis: str = ""


@dataclass(frozen=True)
class ServiceDefinition:
    """A complete service: its struct fields, characteristics and attribute count."""

    name: str
    uuid: UuidArg
    attribute_count: int
    fields: tuple[Field, ...]
    characteristics: tuple[CharacteristicDefinition, ...]
    plain_fields: tuple[Field, ...] = ()
    vis: str = ""

    @property
    def ATTRIBUTE_COUNT(self) -> int:  # noqa: N802 - mirrors the generated constant
        return self.attribute_count


@dataclass
class ServiceBuilder:
    """Collects a service's fields and characteristics into a ServiceDefinition."""

    name: str
    args: ServiceArgs
    vis: str = ""
    attribute_count: int = 1  # the service declaration itself
    _fields: list[Field] = field(default_factory=list, init=False)
    _plain: list[Field] = field(default_factory=list, init=False)
    _characteristics: list[CharacteristicDefinition] = field(default_factory=list, init=False)

    def _increment_attributes(self, access: AccessArgs) -> int:
        # Declaration and value, plus a CCCD when notify or indicate is set.
        self.attribute_count += 3 if access.notify or access.indicate else 2
        return self.attribute_count

    def _build_descriptors(self, ch: Characteristic) -> tuple[DescriptorDefinition, ...]:
        descriptors = []
        screaming = _screaming_snake(ch.name)
        for index, args in enumerate(ch.args.descriptors):
            value = args.default_value if args.default_value is not None else '""'
            if args.capacity is not None:
                length = _integer_literal(args.capacity)
            else:
                length = _literal_length(value)
            capacity = None if length is None else max(MIN_DESCRIPTOR_CAPACITY, length)
            self.attribute_count += 1
            descriptors.append(
                DescriptorDefinition(
                    uuid=args.uuid,
                    properties=tuple(access_properties(args.access)),
                    value=value,
                    capacity=capacity,
                    store_name=f"DESC_{index}_{screaming}",
                )
            )
        return tuple(descriptors)

    def _construct_characteristic(self, ch: Characteristic) -> CharacteristicDefinition:
        return CharacteristicDefinition(
            name=ch.name,
            ty=ch.ty,
            uuid=ch.args.uuid,
            properties=tuple(access_properties(ch.args.access)),
            default_value=ch.args.default_value,
            store_name=_screaming_snake(ch.name),
            descriptors=self._build_descriptors(ch),
            doc_string=ch.args.doc_string,
            vis=ch.vis,
        )

    def process_characteristics_and_fields(
        self, fields: list[Field], characteristics: list[Characteristic]
    ) -> ServiceBuilder:
        """Add plain fields (default-initialised) and characteristic fields."""
        entries: list[tuple[Field, str]] = []
        for f in fields:
            self._plain.append(f)
            entries.append((f, ""))
        for ch in characteristics:
            entries.append(
                (Field(ch.name, f"Characteristic<{ch.ty}>", vis=ch.vis), ch.args.doc_string)
            )
            self._increment_attributes(ch.args.access)
            self._characteristics.append(self._construct_characteristic(ch))
        for f, doc in entries:
            docs = [Attribute("doc", "///" + line) for line in doc.splitlines()]
            self._fields.append(Field(f.name, f.ty, docs, f.vis))
        return self

    def build(self) -> ServiceDefinition:
        """The finished service definition."""
        return ServiceDefinition(
            name=self.name,
            uuid=self.args.uuid,
            attribute_count=self.attribute_count,
            fields=tuple(self._fields),
            characteristics=tuple(self._characteristics),
            plain_fields=tuple(self._plain),
            vis=self.vis,
        )


def gatt_service(args: str | ServiceArgs, name: str, fields: list[Field]) -> ServiceDefinition:
    """Build a service from its attribute arguments and its struct fields."""
    service_args = ServiceArgs.parse(args) if isinstance(args, str) else args
    plain, characteristics = split_characteristics(list(fields))
    builder = ServiceBuilder(name, service_args)
    return builder.process_characteristics_and_fields(plain, characteristics).build()