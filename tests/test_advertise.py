from datetime import timedelta

import pytest

from blehost.advertise import (
    BR_EDR_NOT_SUPPORTED,
    LE_GENERAL_DISCOVERABLE,
    AdvEventProps,
    Advertisement,
    AdvertisementKind,
    AdvertisementParameters,
    AdvertisementSet,
    AdvSet,
    CodecError,
    CompleteLocalName,
    Flags,
    ManufacturerSpecificData,
    PhyKind,
    RawAdvertisement,
    ServiceData16,
    ServiceUuids16,
    ServiceUuids128,
    ShortenedLocalName,
    TxPower,
    UnknownStructure,
    decode,
    encode_slice,
    encode_structure,
)
from blehost.uuid import Uuid

PEER = b"\x01\x02\x03\x04\x05\x06"
K = AdvertisementKind
P = AdvEventProps


def test_adv_name_truncate():
    with pytest.raises(CodecError):
        encode_slice(
            [
                Flags(LE_GENERAL_DISCOVERABLE | BR_EDR_NOT_SUPPORTED),
                ServiceUuids16([Uuid(bytes([0x0F, 0x18]))]),
                CompleteLocalName(b"12345678901234567890123"),
            ],
            31,
        )


def test_flags_encoding():
    flags = LE_GENERAL_DISCOVERABLE | BR_EDR_NOT_SUPPORTED
    assert encode_structure(Flags(flags)) == bytes([0x02, 0x01, flags])


def test_service_uuids16_encoding():
    assert encode_structure(ServiceUuids16([Uuid.uuid16(0x180F)])) == bytes([3, 0x02, 0x0F, 0x18])


def test_service_uuids128_encoding():
    u = Uuid.from_string("408813df-5dd4-1f87-ec11-cdb001100000")
    encoded = encode_structure(ServiceUuids128([u]))
    assert encoded[:2] == bytes([17, 0x07])
    assert encoded[2:] == u.to_bytes()


def test_peripheral_advertisement_round_trip():
    structures = [
        Flags(LE_GENERAL_DISCOVERABLE | BR_EDR_NOT_SUPPORTED),
        ServiceUuids16([Uuid.uuid16(0x180F)]),
        CompleteLocalName(b"Trouble Example"),
    ]
    encoded = encode_slice(structures)
    assert len(encoded) == 3 + 4 + 2 + len(b"Trouble Example")
    assert list(decode(encoded)) == [
        structures[0],
        UnknownStructure(0x02, bytes([0x0F, 0x18])),
        structures[2],
    ]


@pytest.mark.parametrize(
    "structure",
    [
        CompleteLocalName(b"Trouble Multiadv"),
        ShortenedLocalName(b"Trouble"),
        ManufacturerSpecificData(0x0059, b"\x01\x02\x03"),
        UnknownStructure(0x0A, b"\x08"),
    ],
)
def test_round_trip(structure):
    assert list(decode(encode_structure(structure))) == [structure]


def test_service_data_decodes_as_unknown():
    encoded = encode_structure(ServiceData16(0x180F, b"\x63"))
    assert encoded == bytes([4, 0x16, 0x0F, 0x18, 0x63])
    assert list(decode(encoded)) == [UnknownStructure(0x16, bytes([0x0F, 0x18, 0x63]))]


def test_short_manufacturer_data_is_unknown():
    assert list(decode(bytes([2, 0xFF, 0x01]))) == [UnknownStructure(0xFF, b"\x01")]


def test_decode_empty():
    assert list(decode(b"")) == []


@pytest.mark.parametrize(
    "data",
    [b"\x05\x09ab", b"\x00\x09", b"\x02", b"\x01\x01"],
)
def test_decode_errors(data):
    with pytest.raises(CodecError):
        list(decode(data))


def test_overlong_structure_fails_even_with_room():
    with pytest.raises(CodecError):
        encode_slice([CompleteLocalName(bytes(255))], capacity=1000)


def test_uuid_width_checked():
    with pytest.raises(ValueError):
        ServiceUuids16([Uuid.from_string("0000180f-0000-1000-8000-00805f9b34fb")])
    with pytest.raises(ValueError):
        ServiceUuids128([Uuid.uuid16(0x180F)])


@pytest.mark.parametrize(
    "adv, props",
    [
        (Advertisement(K.CONNECTABLE_SCANNABLE_UNDIRECTED, adv_data=b"a"), P.CONNECTABLE | P.SCANNABLE | P.LEGACY),
        (Advertisement(K.CONNECTABLE_NONSCANNABLE_DIRECTED, peer=PEER), P.CONNECTABLE | P.DIRECTED | P.LEGACY),
        (
            Advertisement(K.CONNECTABLE_NONSCANNABLE_DIRECTED_HIGH_DUTY, peer=PEER),
            P.CONNECTABLE | P.HIGH_DUTY_CYCLE_DIRECTED_CONNECTABLE | P.LEGACY,
        ),
        (Advertisement(K.NONCONNECTABLE_SCANNABLE_UNDIRECTED), P.SCANNABLE | P.LEGACY),
        (Advertisement(K.NONCONNECTABLE_NONSCANNABLE_UNDIRECTED), P.LEGACY),
        (Advertisement(K.EXT_CONNECTABLE_NONSCANNABLE_UNDIRECTED), P.CONNECTABLE),
        (Advertisement(K.EXT_CONNECTABLE_NONSCANNABLE_DIRECTED, peer=PEER), P.CONNECTABLE),
        (Advertisement(K.EXT_NONCONNECTABLE_SCANNABLE_UNDIRECTED, scan_data=b"s"), P.SCANNABLE),
        (Advertisement(K.EXT_NONCONNECTABLE_SCANNABLE_DIRECTED, peer=PEER), P.SCANNABLE | P.DIRECTED),
        (Advertisement(K.EXT_NONCONNECTABLE_NONSCANNABLE_UNDIRECTED), P(0)),
        (Advertisement(K.EXT_NONCONNECTABLE_NONSCANNABLE_UNDIRECTED, anonymous=True), P.ANONYMOUS),
        (
            Advertisement(K.EXT_NONCONNECTABLE_NONSCANNABLE_DIRECTED, peer=PEER, anonymous=True),
            P.DIRECTED | P.ANONYMOUS,
        ),
    ],
)
def test_to_raw_props(adv, props):
    raw = adv.to_raw()
    assert raw.props == props
    assert raw.peer == adv.peer


def test_to_raw_carries_data():
    raw = Advertisement(K.CONNECTABLE_SCANNABLE_UNDIRECTED, adv_data=b"ad", scan_data=b"sd").to_raw()
    assert (raw.adv_data, raw.scan_data, raw.peer) == (b"ad", b"sd", None)


def test_directed_needs_peer():
    with pytest.raises(ValueError):
        Advertisement(K.CONNECTABLE_NONSCANNABLE_DIRECTED)


def test_unaccepted_field_rejected():
    with pytest.raises(ValueError):
        Advertisement(K.EXT_NONCONNECTABLE_SCANNABLE_UNDIRECTED, adv_data=b"x")
    with pytest.raises(ValueError):
        Advertisement(K.CONNECTABLE_SCANNABLE_UNDIRECTED, anonymous=True)


def test_raw_default_props():
    assert RawAdvertisement().props == P.CONNECTABLE | P.SCANNABLE | P.LEGACY


def test_default_parameters():
    params = AdvertisementParameters()
    assert params.primary_phy is PhyKind.LE_1M
    assert params.tx_power is TxPower.ZERO_DBM
    assert params.interval_min == timedelta(milliseconds=160)
    assert params.interval_max == timedelta(milliseconds=160)
    assert params.timeout is None and params.max_events is None
    assert params.fragment is False


def test_tx_power_from_dbm_value():
    assert TxPower(-40) is TxPower.MINUS_40_DBM
    params = AdvertisementParameters(tx_power=TxPower(8))
    assert params.tx_power is TxPower.PLUS_8_DBM
    assert int(params.tx_power) == 8


def test_tx_power_rejects_unlisted_level():
    with pytest.raises(ValueError):
        TxPower(1)


def test_handles():
    data = Advertisement(K.EXT_NONCONNECTABLE_SCANNABLE_UNDIRECTED, scan_data=b"x")
    sets = [
        AdvertisementSet(AdvertisementParameters(tx_power=TxPower.PLUS_8_DBM, max_events=1), data),
        AdvertisementSet(
            AdvertisementParameters(
                primary_phy=PhyKind.LE_CODED,
                secondary_phy=PhyKind.LE_CODED,
                timeout=timedelta(seconds=4),
            ),
            data,
        ),
    ]
    assert AdvertisementSet.handles(sets) == [
        AdvSet(0, timedelta(0), 1),
        AdvSet(1, timedelta(seconds=4), 0),
    ]