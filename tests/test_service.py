import pytest

from blehost.characteristic import AccessArgs, Attribute, Field, MacroError
from blehost.service import (
    CharacteristicProp,
    ServiceArgs,
    ServiceBuilder,
    access_properties,
    gatt_service,
    parse_arg_uuid,
)
from blehost.uuid import Uuid

LONG = "408813df-5dd4-1f87-ec11-cdb001100000"


def battery_fields():
    return [
        Field(
            "level",
            "u8",
            [
                Attribute("doc", "/// Battery Level"),
                Attribute("descriptor", "uuid = descriptors::VALID_RANGE, read, value = [0, 100]"),
                Attribute(
                    "descriptor",
                    'uuid = descriptors::MEASUREMENT_DESCRIPTION, read, value = "Battery Level"',
                ),
                Attribute("characteristic", "uuid = characteristic::BATTERY_LEVEL, read, notify, value = 10"),
            ],
        ),
        Field("status", "bool", [Attribute("characteristic", f'uuid = "{LONG}", write, read, notify')]),
    ]


def test_parse_arg_uuid_string_literal():
    assert parse_arg_uuid('"180f"') == Uuid.uuid16(0x180F)
    assert parse_arg_uuid(f'"{LONG}"') == Uuid.from_string(LONG)


def test_parse_arg_uuid_integer_literals():
    assert parse_arg_uuid("0x180f") == Uuid.uuid16(0x180F)
    assert parse_arg_uuid("6159u16") == Uuid.uuid16(6159)


def test_parse_arg_uuid_expression_kept():
    assert parse_arg_uuid("service::BATTERY") == "service::BATTERY"


@pytest.mark.parametrize("text", ['"zz"', "70000", "1.5", "true"])
def test_parse_arg_uuid_errors(text):
    with pytest.raises(MacroError):
        parse_arg_uuid(text)


def test_service_args_parse():
    args = ServiceArgs.parse('uuid = "7e701cf1-b1df-42a1-bb5f-6a1028c793b0"')
    assert args.uuid == Uuid.from_string("7e701cf1-b1df-42a1-bb5f-6a1028c793b0")


@pytest.mark.parametrize(
    "text, message",
    [
        ("", "Service must have a UUID"),
        ('uuid = "180f", uuid = "180a"', "more than once"),
        ('name = "x"', "Unsupported service property: 'name'"),
        ("uuid", "Unexpected argument"),
        ('a::b = "180f"', "Argument name is missing"),
    ],
)
def test_service_args_errors(text, message):
    with pytest.raises(MacroError, match=message):
        ServiceArgs.parse(text)


def test_access_properties_order():
    access = AccessArgs(read=True, write=True, write_without_response=True, notify=True, indicate=True)
    assert access_properties(access) == [
        CharacteristicProp.READ,
        CharacteristicProp.WRITE,
        CharacteristicProp.WRITE_WITHOUT_RESPONSE,
        CharacteristicProp.NOTIFY,
        CharacteristicProp.INDICATE,
    ]
    assert access_properties(AccessArgs(notify=True)) == [CharacteristicProp.NOTIFY]


def test_empty_service_counts_declaration():
    service = gatt_service('uuid = "180f"', "Empty", [])
    assert service.attribute_count == 1
    assert service.ATTRIBUTE_COUNT == service.attribute_count


def test_cccd_adds_one_attribute():
    read_only = gatt_service(
        'uuid = "180f"', "S", [Field("a", "u8", [Attribute("characteristic", 'uuid = "2a19", read')])]
    )
    notify = gatt_service(
        'uuid = "180f"', "S", [Field("a", "u8", [Attribute("characteristic", 'uuid = "2a19", read, notify')])]
    )
    indicate = gatt_service(
        'uuid = "180f"', "S", [Field("a", "u8", [Attribute("characteristic", 'uuid = "2a19", indicate')])]
    )
    assert notify.attribute_count - read_only.attribute_count == 1
    assert indicate.attribute_count == notify.attribute_count


def test_each_descriptor_adds_one_attribute():
    base = [Attribute("characteristic", 'uuid = "2a19", read')]
    desc = Attribute("descriptor", 'uuid = "2a20", read')
    counts = [
        gatt_service('uuid = "180f"', "S", [Field("a", "u8", [*[desc] * n, *base])]).attribute_count
        for n in range(3)
    ]
    assert counts[1] - counts[0] == counts[2] - counts[1] == 1


def test_battery_service_structure():
    service = gatt_service("uuid = service::BATTERY", "BatteryService", battery_fields())
    assert service.uuid == "service::BATTERY"
    level, status = service.characteristics
    assert level.name == "level"
    assert level.store_name == "LEVEL"
    assert level.default_value == "10"
    assert level.uuid == "characteristic::BATTERY_LEVEL"
    assert level.properties == (CharacteristicProp.READ, CharacteristicProp.NOTIFY)
    assert level.doc_string == " Battery Level"
    assert [d.store_name for d in level.descriptors] == ["DESC_0_LEVEL", "DESC_1_LEVEL"]
    assert status.uuid == Uuid.from_string(LONG)
    assert status.default_value is None
    expected = 1 + sum(
        (3 if CharacteristicProp.NOTIFY in c.properties else 2) + len(c.descriptors)
        for c in service.characteristics
    )
    assert service.attribute_count == expected


def test_descriptor_capacity_minimum_and_length():
    long_text = "a descriptor value longer than the minimum"
    fields = [
        Field(
            "rate_of_discharge",
            "f32",
            [
                Attribute("descriptor", 'uuid = "2a21", read, value = [0, 100]'),
                Attribute("descriptor", f'uuid = "2a21", read, value = "{long_text}"'),
                Attribute("descriptor", 'uuid = "2a21", read'),
                Attribute("descriptor", 'uuid = "2a21", value = VAL'),
                Attribute("characteristic", 'uuid = "2a22", read'),
            ],
        )
    ]
    (ch,) = gatt_service('uuid = "180f"', "S", fields).characteristics
    short, long_, empty, unknown = ch.descriptors
    assert short.capacity == 16
    assert long_.capacity == len(long_text)
    assert empty.value == '""' and empty.capacity == 16
    assert unknown.capacity is None
    assert unknown.properties == ()
    assert ch.store_name == "RATE_OF_DISCHARGE"
    assert short.store_name == "DESC_0_RATE_OF_DISCHARGE"


def test_fields_plain_first_with_docs():
    fields = [Field("counter", "u32", [Attribute("doc", "/// ignored")], vis="pub"), *battery_fields()]
    service = gatt_service('uuid = "180f"', "S", fields)
    assert [f.name for f in service.fields] == ["counter", "level", "status"]
    assert service.fields[0].attrs == []
    assert service.fields[1].ty == "Characteristic<u8>"
    assert service.fields[1].attrs == [Attribute("doc", "/// Battery Level")]
    assert [f.name for f in service.plain_fields] == ["counter"]


def test_builder_directly():
    builder = ServiceBuilder("S", ServiceArgs(Uuid.uuid16(0x180F)), vis="pub")
    service = builder.process_characteristics_and_fields([Field("x", "u8")], []).build()
    assert service.vis == "pub"
    assert service.attribute_count == builder.attribute_count
    assert service.characteristics == ()


def test_gatt_service_reports_bad_characteristic():
    fields = [Field("a", "u8", [Attribute("characteristic", "read")])]
    with pytest.raises(MacroError, match="Parsing characteristics was unsuccessful"):
        gatt_service('uuid = "180f"', "S", fields)