"""Bluetooth UUIDs in the 16-bit short form or the 128-bit long form."""

from __future__ import annotations

import re
import uuid as _stduuid
from dataclasses import dataclass

_HEX = "[0-9a-fA-F]"
_HYPHENATED = rf"{_HEX}{{8}}-{_HEX}{{4}}-{_HEX}{{4}}-{_HEX}{{4}}-{_HEX}{{12}}"
_LONG_FORMS = (
    re.compile(rf"{_HEX}{{32}}"),
    re.compile(_HYPHENATED),
    re.compile(rf"\{{{_HYPHENATED}\}}"),
    re.compile(rf"urn:uuid:{_HYPHENATED}"),
)
_SHORT_FORM = re.compile(rf"\+?{_HEX}+")


class InvalidUuid(ValueError):
    """Raised when a value cannot be turned into a Bluetooth UUID."""


@dataclass(frozen=True)
class Uuid:
    """A Bluetooth UUID held as its little-endian wire bytes (2 or 16 bytes)."""

    raw: bytes

    def __post_init__(self) -> None:
        raw = bytes(self.raw)
        if len(raw) not in (2, 16):
            raise InvalidUuid("Invalid UUID (must be a 16-bit or 128-bit UUID)")
        object.__setattr__(self, "raw", raw)

    @classmethod
    def uuid16(cls, value: int) -> Uuid:
        """Build a 16-bit UUID from its numeric value."""
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 0xFFFF:
            raise InvalidUuid(f"Invalid 16bit UUID value: {value!r}")
        return cls(value.to_bytes(2, "little"))

    @classmethod
    def from_string(cls, value: str) -> Uuid:
        """Parse "180f"-style short UUIDs or any standard 128-bit UUID text."""
        if any(form.fullmatch(value) for form in _LONG_FORMS):
            big_endian = _stduuid.UUID(value).bytes
            return cls(big_endian[::-1])
        if len(value) == 4 and _SHORT_FORM.fullmatch(value):
            return cls.uuid16(int(value, 16))
        raise InvalidUuid("Invalid UUID (must be a 16-bit or 128-bit UUID)")

    @property
    def is_short(self) -> bool:
        return len(self.raw) == 2

    @property
    def value(self) -> int:
        """The numeric value of the UUID."""
        return int.from_bytes(self.raw, "little")

    def to_bytes(self) -> bytes:
        """The UUID in little-endian wire order."""
        return self.raw

    def __str__(self) -> str:
        if self.is_short:
            return f"{self.value:04x}"
        return str(_stduuid.UUID(bytes=self.raw[::-1]))


def parse_uuid(value: Uuid | str | int | bytes | bytearray) -> Uuid:
    """Turn a UUID, UUID text, 16-bit integer or raw wire bytes into a Uuid."""
    if isinstance(value, Uuid):
        return value
    if isinstance(value, str):
        return Uuid.from_string(value)
    if isinstance(value, (bytes, bytearray)):
        return Uuid(bytes(value))
    if isinstance(value, int) and not isinstance(value, bool):
        return Uuid.uuid16(value)
    raise InvalidUuid(f"Cannot make a UUID from {value!r}")