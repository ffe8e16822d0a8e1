"""Advertisement configuration and advertising-data (AD structure) coding."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Union

from .uuid import Uuid

AD_FLAG_LE_LIMITED_DISCOVERABLE = 0b00000001
LE_GENERAL_DISCOVERABLE = 0b00000010
BR_EDR_NOT_SUPPORTED = 0b00000100
SIMUL_LE_BR_CONTROLLER = 0b00001000
SIMUL_LE_BR_HOST = 0b00010000

LEGACY_ADV_DATA_LEN = 31


class CodecError(Exception):
    """Advertisement data could not be encoded or decoded."""


class TxPower(enum.IntEnum):
    """Transmit power levels in dBm."""

    MINUS_40_DBM = -40
    MINUS_20_DBM = -20
    MINUS_16_DBM = -16
    MINUS_12_DBM = -12
    MINUS_8_DBM = -8
    MINUS_4_DBM = -4
    ZERO_DBM = 0
    PLUS_2_DBM = 2
    PLUS_3_DBM = 3
    PLUS_4_DBM = 4
    PLUS_5_DBM = 5
    PLUS_6_DBM = 6
    PLUS_7_DBM = 7
    PLUS_8_DBM = 8
    PLUS_10_DBM = 10
    PLUS_12_DBM = 12
    PLUS_14_DBM = 14
    PLUS_16_DBM = 16
    PLUS_18_DBM = 18
    PLUS_20_DBM = 20


class PhyKind(enum.IntEnum):
    """Radio PHY used for advertising."""

    LE_1M = 1
    LE_2M = 2
    LE_CODED = 3


class AdvEventProps(enum.IntFlag):
    """Advertising event properties."""

    CONNECTABLE = 0x01
    SCANNABLE = 0x02
    DIRECTED = 0x04
    HIGH_DUTY_CYCLE_DIRECTED_CONNECTABLE = 0x08
    LEGACY = 0x10
    ANONYMOUS = 0x20
    INCLUDE_TX_POWER = 0x40


class AdvertisementKind(enum.Enum):
    """Which advertisement is requested."""

    CONNECTABLE_SCANNABLE_UNDIRECTED = "connectable_scannable_undirected"
    CONNECTABLE_NONSCANNABLE_DIRECTED = "connectable_nonscannable_directed"
    CONNECTABLE_NONSCANNABLE_DIRECTED_HIGH_DUTY = "connectable_nonscannable_directed_high_duty"
    NONCONNECTABLE_SCANNABLE_UNDIRECTED = "nonconnectable_scannable_undirected"
    NONCONNECTABLE_NONSCANNABLE_UNDIRECTED = "nonconnectable_nonscannable_undirected"
    EXT_CONNECTABLE_NONSCANNABLE_UNDIRECTED = "ext_connectable_nonscannable_undirected"
    EXT_CONNECTABLE_NONSCANNABLE_DIRECTED = "ext_connectable_nonscannable_directed"
    EXT_NONCONNECTABLE_SCANNABLE_UNDIRECTED = "ext_nonconnectable_scannable_undirected"
    EXT_NONCONNECTABLE_SCANNABLE_DIRECTED = "ext_nonconnectable_scannable_directed"
    EXT_NONCONNECTABLE_NONSCANNABLE_UNDIRECTED = "ext_nonconnectable_nonscannable_undirected"
    EXT_NONCONNECTABLE_NONSCANNABLE_DIRECTED = "ext_nonconnectable_nonscannable_directed"


_P = AdvEventProps
_K = AdvertisementKind
# Event properties and accepted fields for each kind.
_KIND_SPEC: dict[AdvertisementKind, tuple[AdvEventProps, frozenset[str]]] = {
    _K.CONNECTABLE_SCANNABLE_UNDIRECTED: (
        _P.CONNECTABLE | _P.SCANNABLE | _P.LEGACY,
        frozenset({"adv_data", "scan_data"}),
    ),
    _K.CONNECTABLE_NONSCANNABLE_DIRECTED: (
        _P.CONNECTABLE | _P.DIRECTED | _P.LEGACY,
        frozenset({"peer"}),
    ),
    _K.CONNECTABLE_NONSCANNABLE_DIRECTED_HIGH_DUTY: (
        _P.CONNECTABLE | _P.HIGH_DUTY_CYCLE_DIRECTED_CONNECTABLE | _P.LEGACY,
        frozenset({"peer"}),
    ),
    _K.NONCONNECTABLE_SCANNABLE_UNDIRECTED: (
        _P.SCANNABLE | _P.LEGACY,
        frozenset({"adv_data", "scan_data"}),
    ),
    _K.NONCONNECTABLE_NONSCANNABLE_UNDIRECTED: (_P.LEGACY, frozenset({"adv_data"})),
    _K.EXT_CONNECTABLE_NONSCANNABLE_UNDIRECTED: (_P.CONNECTABLE, frozenset({"adv_data"})),
    _K.EXT_CONNECTABLE_NONSCANNABLE_DIRECTED: (_P.CONNECTABLE, frozenset({"peer", "adv_data"})),
    _K.EXT_NONCONNECTABLE_SCANNABLE_UNDIRECTED: (_P.SCANNABLE, frozenset({"scan_data"})),
    _K.EXT_NONCONNECTABLE_SCANNABLE_DIRECTED: (
        _P.SCANNABLE | _P.DIRECTED,
        frozenset({"peer", "scan_data"}),
    ),
    _K.EXT_NONCONNECTABLE_NONSCANNABLE_UNDIRECTED: (
        _P(0),
        frozenset({"anonymous", "adv_data"}),
    ),
    _K.EXT_NONCONNECTABLE_NONSCANNABLE_DIRECTED: (
        _P.DIRECTED,
        frozenset({"anonymous", "peer", "adv_data"}),
    ),
}

_DEFAULT_PROPS = _P.CONNECTABLE | _P.SCANNABLE | _P.LEGACY


@dataclass(frozen=True)
class RawAdvertisement:
    """Advertisement in the form handed to the controller."""

    props: AdvEventProps = _DEFAULT_PROPS
    adv_data: bytes = b""
    scan_data: bytes = b""
    peer: object = None


@dataclass(frozen=True)
class Advertisement:
    """Advertisement payload for one advertisement kind."""

    kind: AdvertisementKind
    adv_data: bytes = b""
    scan_data: bytes = b""
    peer: object = None
    anonymous: bool = False

    def __post_init__(self) -> None:
        _, accepted = _KIND_SPEC[self.kind]
        object.__setattr__(self, "adv_data", bytes(self.adv_data))
        object.__setattr__(self, "scan_data", bytes(self.scan_data))
        if "peer" in accepted and self.peer is None:
            raise ValueError(f"{self.kind.name} needs a peer address")
        given = {
            "adv_data": bool(self.adv_data),
            "scan_data": bool(self.scan_data),
            "peer": self.peer is not None,
            "anonymous": self.anonymous,
        }
        for name, present in given.items():
            if present and name not in accepted:
                raise ValueError(f"{self.kind.name} does not take {name}")

    def to_raw(self) -> RawAdvertisement:
        """The controller-level form of this advertisement."""
        props, _ = _KIND_SPEC[self.kind]
        if self.anonymous:
            props |= AdvEventProps.ANONYMOUS
        return RawAdvertisement(
            props=props, adv_data=self.adv_data, scan_data=self.scan_data, peer=self.peer
        )


@dataclass(frozen=True)
class AdvertisementParameters:
    """Parameters for an advertisement."""

    primary_phy: PhyKind = PhyKind.LE_1M
    secondary_phy: PhyKind = PhyKind.LE_1M
    tx_power: TxPower = TxPower.ZERO_DBM
    timeout: timedelta | None = None
    max_events: int | None = None
    interval_min: timedelta = timedelta(milliseconds=160)
    interval_max: timedelta = timedelta(milliseconds=160)
    channel_map: object = None
    filter_policy: int = 0
    fragment: bool = False


@dataclass(frozen=True)
class AdvSet:
    """Controller handle and limits for one advertising set."""

    adv_handle: int
    duration: timedelta = timedelta(0)
    max_ext_adv_events: int = 0


@dataclass(frozen=True)
class AdvertisementSet:
    """Configuration for a single advertisement set."""

    params: AdvertisementParameters = field(default_factory=AdvertisementParameters)
    data: Advertisement = field(
        default_factory=lambda: Advertisement(AdvertisementKind.CONNECTABLE_SCANNABLE_UNDIRECTED)
    )

    @staticmethod
    def handles(sets: Sequence[AdvertisementSet]) -> list[AdvSet]:
        """One handle per set, numbered in order."""
        if len(sets) > 256:
            raise ValueError("at most 256 advertising sets are supported")
        return [
            AdvSet(
                adv_handle=index,
                duration=s.params.timeout if s.params.timeout is not None else timedelta(0),
                max_ext_adv_events=s.params.max_events or 0,
            )
            for index, s in enumerate(sets)
        ]


def _check_range(value: int, limit: int, what: str) -> None:
    if not 0 <= value <= limit:
        raise ValueError(f"{what} out of range: {value}")


@dataclass(frozen=True)
class Flags:
    """Device flags and baseband capabilities."""

    flags: int

    def __post_init__(self) -> None:
        _check_range(self.flags, 0xFF, "flags")


@dataclass(frozen=True)
class ServiceUuids16:
    """List of 16-bit service UUIDs."""

    uuids: tuple[Uuid, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "uuids", tuple(self.uuids))
        if not all(u.is_short for u in self.uuids):
            raise ValueError("ServiceUuids16 takes only 16-bit UUIDs")


@dataclass(frozen=True)
class ServiceUuids128:
    """List of 128-bit service UUIDs."""

    uuids: tuple[Uuid, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "uuids", tuple(self.uuids))
        if any(u.is_short for u in self.uuids):
            raise ValueError("ServiceUuids128 takes only 128-bit UUIDs")


@dataclass(frozen=True)
class ServiceData16:
    """Service data with a 16-bit service UUID."""

    uuid: int
    data: bytes = b""

    def __post_init__(self) -> None:
        _check_range(self.uuid, 0xFFFF, "uuid")
        object.__setattr__(self, "data", bytes(self.data))


@dataclass(frozen=True)
class CompleteLocalName:
    """The full device name."""

    name: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", bytes(self.name))


@dataclass(frozen=True)
class ShortenedLocalName:
    """The shortened device name."""

    name: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", bytes(self.name))


@dataclass(frozen=True)
class ManufacturerSpecificData:
    """Manufacturer specific data."""

    company_identifier: int
    payload: bytes = b""

    def __post_init__(self) -> None:
        _check_range(self.company_identifier, 0xFFFF, "company identifier")
        object.__setattr__(self, "payload", bytes(self.payload))


@dataclass(frozen=True)
class UnknownStructure:
    """An AD structure of a type not otherwise handled, kept as raw bytes."""

    ty: int
    data: bytes = b""

    def __post_init__(self) -> None:
        _check_range(self.ty, 0xFF, "type")
        object.__setattr__(self, "data", bytes(self.data))


AdStructure = Union[
    Flags,
    ServiceUuids16,
    ServiceUuids128,
    ServiceData16,
    CompleteLocalName,
    ShortenedLocalName,
    ManufacturerSpecificData,
    UnknownStructure,
]


def _frame(ty: int, payload: bytes) -> bytes:
    length = len(payload) + 1
    if length > 0xFF:
        raise CodecError(f"AD structure too long: {length} bytes")
    return bytes([length, ty]) + payload


def encode_structure(structure: AdStructure) -> bytes:
    """Encode one AD structure as length, type and data."""
    match structure:
        case Flags(flags=flags):
            return _frame(0x01, bytes([flags]))
        case ServiceUuids16(uuids=uuids):
            return _frame(0x02, b"".join(u.to_bytes() for u in uuids))
        case ServiceUuids128(uuids=uuids):
            return _frame(0x07, b"".join(u.to_bytes() for u in uuids))
        case ShortenedLocalName(name=name):
            return _frame(0x08, name)
        case CompleteLocalName(name=name):
            return _frame(0x09, name)
        case ServiceData16(uuid=uuid, data=data):
            return _frame(0x16, uuid.to_bytes(2, "little") + data)
        case ManufacturerSpecificData(company_identifier=company, payload=payload):
            return _frame(0xFF, company.to_bytes(2, "little") + payload)
        case UnknownStructure(ty=ty, data=data):
            return _frame(ty, data)
    raise TypeError(f"not an AD structure: {structure!r}")


def encode_slice(
    structures: Iterable[AdStructure], capacity: int = LEGACY_ADV_DATA_LEN
) -> bytes:
    """Encode AD structures back to back; fail if they exceed ``capacity`` bytes."""
    encoded = b"".join(encode_structure(s) for s in structures)
    if len(encoded) > capacity:
        raise CodecError(
            f"advertisement data too long: {len(encoded)} bytes, capacity {capacity}"
        )
    return encoded


def _structure(code: int, body: bytes) -> AdStructure:
    if code == 0x01:
        if not body:
            raise CodecError("flags structure without data")
        return Flags(body[0])
    if code == 0x08:
        return ShortenedLocalName(body)
    if code == 0x09:
        return CompleteLocalName(body)
    if code == 0xFF and len(body) >= 2:
        return ManufacturerSpecificData(int.from_bytes(body[:2], "little"), body[2:])
    return UnknownStructure(code, body)


def decode(data: bytes) -> Iterator[AdStructure]:
    """Yield the AD structures in ``data``; raise CodecError on malformed input."""
    data = bytes(data)
    pos = 0
    while pos < len(data):
        length = data[pos]
        pos += 1
        if pos >= len(data):
            raise CodecError("AD structure type missing")
        code = data[pos]
        pos += 1
        if length == 0:
            raise CodecError("AD structure with zero length")
        end = pos + length - 1
        if end > len(data):
            raise CodecError("AD structure runs past end of data")
        body = data[pos:end]
        pos = end
        yield _structure(code, body)