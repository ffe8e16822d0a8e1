"""Parsing of characteristic and descriptor attributes on service fields."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from .uuid import InvalidUuid, Uuid

_IDENT = r"[A-Za-z_][A-Za-z0-9_]*"
_PATH = rf"{_IDENT}(?:\s*::\s*{_IDENT})*"
_ITEM = re.compile(rf"\s*({_PATH})\s*(?:=(?!=)(.*))?", re.DOTALL)
_STRING = re.compile(r'"((?:[^"\\]|\\.)*)"', re.DOTALL)
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", '"': '"', "'": "'"}
_CLOSING = {")": "(", "]": "[", "}": "{"}

UuidArg = Uuid | str


class MacroError(ValueError):
    """An attribute could not be parsed."""

    def __init__(self, message: str, span: object = None) -> None:
        super().__init__(message)
        self.message = message
        self.span = span


@dataclass(frozen=True)
class MetaItem:
    """One ``name`` or ``name = value`` entry of an attribute's argument list."""

    name: str
    value: str | None = None

    @property
    def ident(self) -> str | None:
        """The name if it is a single identifier rather than a path."""
        return None if "::" in self.name else self.name

    @property
    def string_literal(self) -> str | None:
        """The unescaped content if the value is a string literal."""
        if self.value is None:
            return None
        match = _STRING.fullmatch(self.value)
        if match is None:
            return None
        return re.sub(r"\\(.)", lambda e: _ESCAPES.get(e.group(1), e.group(0)), match.group(1))


def _split_top_level(text: str) -> list[str]:
    parts: list[str] = []
    current: list[str] = []
    stack: list[str] = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            current.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "([{":
            stack.append(ch)
        elif ch in ")]}":
            if not stack or stack.pop() != _CLOSING[ch]:
                raise MacroError(f"unbalanced delimiter '{ch}'")
        elif ch == "," and not stack:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    if in_string:
        raise MacroError("unterminated string literal")
    if stack:
        raise MacroError(f"unclosed delimiter '{stack[-1]}'")
    parts.append("".join(current))
    return parts


def parse_meta(text: str) -> list[MetaItem]:
    """Split attribute arguments such as ``uuid = "180f", read`` into items."""
    parts = _split_top_level(text)
    if parts and not parts[-1].strip():
        parts.pop()
    items = []
    for part in parts:
        if not part.strip():
            raise MacroError("expected attribute arguments, found `,`")
        match = _ITEM.fullmatch(part)
        if match is None:
            raise MacroError(f"expected a name or `name = value`, found `{part.strip()}`")
        name = re.sub(r"\s+", "", match.group(1))
        value = match.group(2)
        if value is not None:
            value = value.strip()
            if not value:
                raise MacroError(f"expected an expression after `{name} =`")
        items.append(MetaItem(name, value))
    return items


@dataclass(frozen=True)
class Attribute:
    """An attribute on a field: its name and its argument text.

    For ``doc`` attributes the text is the comment as written, e.g. ``/// Level``.
    """

    name: str
    text: str = ""

    @property
    def ident(self) -> str | None:
        return None if "::" in self.name else self.name

    @property
    def items(self) -> list[MetaItem]:
        return parse_meta(self.text)


@dataclass
class Field:
    """A named struct field with its type, attributes and visibility."""

    name: str
    ty: str
    attrs: list[Attribute] = field(default_factory=list)
    vis: str = ""


@dataclass
class AccessArgs:
    """Which operations a characteristic or descriptor allows."""

    read: bool = False
    write: bool = False
    write_without_response: bool = False
    notify: bool = False
    indicate: bool = False


def parse_uuid_item(item: MetaItem) -> UuidArg:
    """A checked Uuid for string literals; any other expression is kept as text."""
    if item.value is None:
        raise MacroError(
            "uuid must be followed by '= [data]'.  i.e. uuid = \"2a37\" or "
            "\"0000180f-0000-1000-8000-00805f9b34fb\""
        )
    literal = item.string_literal
    if literal is not None:
        try:
            return Uuid.from_string(literal)
        except InvalidUuid:
            raise MacroError(
                "Invalid UUID string.  Expect i.e. \"180f\" or "
                "\"0000180f-0000-1000-8000-00805f9b34fb\""
            ) from None
    return item.value


def _ident(item: MetaItem) -> str:
    name = item.ident
    if name is None:
        raise MacroError("no ident")
    return name


def _check_multi(seen: dict[str, object], name: str, value: object) -> None:
    if name in seen:
        raise MacroError(f"'{name}' should not be specified more than once")
    seen[name] = value


def _flag(item: MetaItem) -> bool:
    if item.value is not None:
        raise MacroError("expected `,`")
    return True


@dataclass
class DescriptorArgs:
    """Arguments of a ``descriptor`` attribute."""

    uuid: UuidArg
    default_value: str | None = None
    capacity: str | None = None
    access: AccessArgs = field(default_factory=AccessArgs)

    @classmethod
    def parse(cls, attribute: Attribute) -> DescriptorArgs:
        seen: dict[str, object] = {}
        for item in attribute.items:
            name = _ident(item)
            if name == "uuid":
                _check_multi(seen, "uuid", parse_uuid_item(item))
            elif name == "read":
                _check_multi(seen, "read", _flag(item))
            elif name == "value":
                if item.value is None:
                    raise MacroError(
                        "'value' must be followed by '= [data]'.  i.e. value = \"Hello World\""
                    )
                _check_multi(seen, "value", item.value)
            elif name == "default_value":
                raise MacroError("use 'value' for default value")
            else:
                raise MacroError(
                    f"Unsupported descriptor property: '{name}'.\n"
                    "Supported properties are: uuid, read, value"
                )
        if "uuid" not in seen:
            raise MacroError("Descriptor must have a UUID")
        return cls(
            uuid=seen["uuid"],
            default_value=seen.get("value"),
            capacity=None,
            access=AccessArgs(read=bool(seen.get("read", False))),
        )


@dataclass
class CharacteristicArgs:
    """Arguments of a ``characteristic`` attribute, plus its descriptors and docs."""

    uuid: UuidArg
    default_value: str | None = None
    descriptors: list[DescriptorArgs] = field(default_factory=list)
    doc_string: str = ""
    access: AccessArgs = field(default_factory=AccessArgs)

    @classmethod
    def parse(cls, attribute: Attribute) -> CharacteristicArgs:
        flags = ("read", "write", "notify", "indicate", "write_without_response")
        seen: dict[str, object] = {}
        for item in attribute.items:
            name = _ident(item)
            if name == "uuid":
                _check_multi(seen, "uuid", parse_uuid_item(item))
            elif name in flags:
                _check_multi(seen, name, _flag(item))
            elif name == "value":
                if item.value is None:
                    raise MacroError(
                        "'value' must be followed by '= [data]'.  i.e. value = \"42\""
                    )
                _check_multi(seen, "value", item.value)
            elif name == "default_value":
                raise MacroError("Use 'value' for default value")
            elif name == "descriptor":
                raise MacroError(
                    "Descriptors are added as separate tags i.e. #[descriptor(uuid = \"1234\", "
                    "value = 42, read, write, notify, indicate)]"
                )
            else:
                raise MacroError(
                    f"Unsupported characteristic property: '{name}'.\n"
                    "Supported properties are:\n"
                    "uuid, read, write, write_without_response, notify, indicate, value\n"
                )
        if "uuid" not in seen:
            raise MacroError("Characteristic must have a UUID")
        return cls(
            uuid=seen["uuid"],
            default_value=seen.get("value"),
            access=AccessArgs(**{flag: bool(seen.get(flag, False)) for flag in flags}),
        )


@dataclass
class Characteristic:
    """A field turned into a characteristic."""

    name: str
    ty: str
    args: CharacteristicArgs
    vis: str = ""


def check_for_characteristic(field: Field) -> Characteristic | None:
    """Parse a field's characteristic, or return None if it has none.

    Raises MacroError if its attributes are malformed.
    """
    char_attr = next((a for a in field.attrs if a.name == "characteristic"), None)
    if char_attr is None:
        return None

    descriptors: list[DescriptorArgs] = []
    doc_lines: list[str] = []
    seen_characteristic = False
    for attr in field.attrs:
        ident = attr.ident
        if ident is None:
            continue
        if ident == "doc":
            pieces = attr.text.split("///")
            if len(pieces) > 1:
                doc_lines.append(pieces[1])
        elif ident == "descriptor":
            descriptors.append(DescriptorArgs.parse(attr))
        elif ident == "characteristic":
            if seen_characteristic:
                raise MacroError(
                    "only one characteristic tag should be applied per field", span=attr
                )
            seen_characteristic = True
        elif ident == "descriptors":
            raise MacroError(
                "specify a descriptor like: #[descriptor(uuid = \"1234\", value = \"Hello World\", "
                "read, write, notify)]\nCan be specified multiple times.",
                span=attr,
            )
        else:
            raise MacroError(
                "only doc (///), descriptor and characteristic tags are supported.", span=attr
            )

    args = CharacteristicArgs.parse(char_attr)
    args.doc_string = "\n".join(doc_lines)
    args.descriptors = descriptors
    return Characteristic(name=field.name, ty=field.ty, args=args, vis=field.vis)


def split_characteristics(fields: list[Field]) -> tuple[list[Field], list[Characteristic]]:
    """Separate plain fields from characteristic fields.

    If any field fails to parse, the last failure is reported.
    """
    plain: list[Field] = []
    characteristics: list[Characteristic] = []
    failure: MacroError | None = None
    for f in fields:
        try:
            found = check_for_characteristic(f)
        except MacroError as exc:
            failure = exc
            continue
        if found is None:
            plain.append(f)
        else:
            characteristics.append(found)
    if failure is not None:
        raise MacroError(
            f"Parsing characteristics was unsuccessful:\n{failure.message}", span=failure.span
        )
    return plain, characteristics