# blehost

Building blocks for a Bluetooth Low Energy host. The package is plain Python
and has no third-party dependencies.

- `blehost.advertise` encodes and decodes advertising-data (AD) structures.
  It also describes advertisement kinds and their event properties,
  advertisement parameters and advertisement sets.
- `blehost.uuid` handles 16-bit and 128-bit Bluetooth UUIDs.
- `blehost.characteristic`, `blehost.service` and `blehost.server` describe
  GATT services and servers with attribute-style arguments. They check those
  arguments and work out how many attribute-table entries each service and
  server needs.
- `blehost.ctxt` collects several errors so that they can be reported
  together.
- `blehost.config` resolves queue and pool sizes from the environment and
  from feature flags.

## Installation

```
pip install blehost
```

To run the test suite:

```
pip install "blehost[test]"
pytest
```

## Advertising data

```python
from blehost.advertise import (
    BR_EDR_NOT_SUPPORTED,
    LE_GENERAL_DISCOVERABLE,
    CodecError,
    CompleteLocalName,
    Flags,
    decode,
    encode_slice,
)

data = encode_slice(
    [Flags(LE_GENERAL_DISCOVERABLE | BR_EDR_NOT_SUPPORTED), CompleteLocalName(b"Sensor")]
)

for structure in decode(data):
    print(structure)
```

### Encoding

Each structure is written as a length byte, a type byte and the data.
`encode_structure` encodes a single structure. `encode_slice(structures, capacity=31)`
encodes structures back to back. It raises `CodecError` if the result is
longer than `capacity`. The default of 31 bytes is the size of a legacy
advertising packet, so a long local name together with flags and a service
UUID list does not fit.

The structure classes are:

- `Flags`
- `ServiceUuids16` and `ServiceUuids128`
- `ServiceData16`
- `CompleteLocalName` and `ShortenedLocalName`
- `ManufacturerSpecificData`
- `UnknownStructure`

### Decoding

`decode(data)` is a generator of structures. It recognises the following
types:

- flags
- shortened and complete local names
- manufacturer-specific data with at least two bytes

Every other type, including service UUID lists and service data, comes back
as `UnknownStructure`. Malformed input raises `CodecError`.

### Advertisements and advertisement sets

An `Advertisement` combines an `AdvertisementKind` with the fields that kind
accepts: `adv_data`, `scan_data`, `peer` and `anonymous`. Giving a field that
the kind does not take raises `ValueError`, and so does leaving out a
required peer.

`Advertisement.to_raw()` returns the `RawAdvertisement`, which carries the
matching `AdvEventProps`. `AdvertisementParameters` holds the remaining
settings: the PHYs (`PhyKind`), `TxPower`, the intervals, the timeout and the
maximum number of events.

`AdvertisementSet.handles(sets)` returns one `AdvSet` per set. Handles are
numbered in order and carry each set's timeout and event limit.

## UUIDs

```python
from blehost.uuid import InvalidUuid, Uuid, parse_uuid

battery = Uuid.from_string("180f")
custom = Uuid.from_string("408813df-5dd4-1f87-ec11-cdb001100000")
print(battery.to_bytes(), custom.to_bytes(), str(custom))

assert parse_uuid(0x180F) == battery

try:
    Uuid.from_string("not-a-uuid")
except InvalidUuid as exc:
    print(exc)
```

A short UUID is written as four hex digits. Standard 128-bit UUID text is
also accepted. `to_bytes()` returns the little-endian wire order.

## GATT services and servers

```python
from blehost.characteristic import Attribute, Field
from blehost.server import gatt_server
from blehost.service import gatt_service

battery = gatt_service(
    'uuid = "180f"',
    "BatteryService",
    [
        Field(
            "level",
            "u8",
            [
                Attribute("doc", "/// Battery Level"),
                Attribute("descriptor", 'uuid = "2901", read, value = "Battery Level"'),
                Attribute("characteristic", 'uuid = "2a19", read, notify, value = 10'),
            ],
        ),
    ],
)
print(battery.attribute_count)  # 5: service, declaration, value, CCCD, descriptor

server = gatt_server("", "Server", {"battery_service": battery}, gap_attribute_count=8)
print(server.attribute_table_size)  # 13
```

### Services

`gatt_service` takes three things:

- the service arguments (`uuid = ...`), as text or as `ServiceArgs`;
- the service name;
- its `Field`s.

Fields that carry a `characteristic` attribute become characteristics. All
other fields are kept as plain fields.

A characteristic accepts these arguments:

- `uuid`
- `read`, `write`, `write_without_response`, `notify`, `indicate`
- `value`

A `descriptor` attribute accepts `uuid`, `read` and `value`.

A UUID given as a string literal is checked. Any other expression is kept as
text. For a service UUID, an integer literal is also accepted as a 16-bit
UUID.

### The service definition

The resulting `ServiceDefinition` lists the characteristics. Each one carries
its properties (`CharacteristicProp`), its default value and its descriptors.
A descriptor's storage capacity is at least 16 bytes.

The definition also gives the number of attributes the service takes:

- 1 for the service itself;
- 2 per characteristic, or 3 when it can notify or indicate;
- 1 per descriptor.

### Servers

`gatt_server` combines services into a `ServerDefinition`. You pass the
attribute count of the GAP service yourself as `gap_attribute_count`. The
server accepts two arguments: `mutex_type` and `attribute_table_size`.

Without `attribute_table_size`, the table size is the GAP count plus every
service's count. An explicit size that is too small is rejected.

### Errors

Invalid definitions raise `MacroError`. Examples are a missing UUID, a
property given twice, or an unsupported property. For an unsupported
property, the message lists the supported ones.

`blehost.ctxt.Ctxt` gathers errors with `error(obj, msg)` and raises them all
together as `MacroErrors` from `check()`.

## Configuration

`resolve_config(environ, crate_name)` works out the sizing values listed in
`blehost.config.CONFIGS` from an environment mapping, in this order of
priority:

1. `<CRATE_NAME>_<SETTING>` variables. The crate name is upper-cased and
   `-` is turned into `_`.
2. `CARGO_FEATURE_<SETTING>_<VALUE>` feature flags.
3. The built-in defaults.

It raises `ConfigError` in any of these cases:

- an unknown `<CRATE_NAME>_` setting;
- a value that is not an unsigned number;
- two feature flags for the same setting.

`render_config(values)` turns the values into lines of the form `NAME = value`.

The same resolution is available from the command line:

```
blehost-config --crate-name my-host
```

The crate name may also come from `CARGO_PKG_NAME`. The command prints the
resolved values. With `--out-dir DIR` (or `OUT_DIR`) it writes them to
`DIR/config.py` instead.

## What this package does not do

The package only describes and checks advertisements and GATT layouts. It
does not talk to a Bluetooth controller, scan, advertise over the air or
make connections. It does not run a GATT server or client, and it does not
open L2CAP channels.