import pytest

from rtpkit.exceptions import (
    ExtensionIDRangeError,
    ExtensionSizeError,
    HeaderExtensionNotFoundError,
    HeaderExtensionsNotEnabledError,
    HeaderSizeInsufficientError,
    HeaderSizeInsufficientForExtensionError,
    InvalidPaddingError,
    ShortBufferError,
    TooSmallError,
)
from rtpkit.packet import Extension, Header, Packet

FIXED = bytes([0x90, 0xE0, 0x69, 0x8F, 0xD9, 0xC2, 0x93, 0xDA, 0x1C, 0x64, 0x27, 0x82])
BODY = bytes([0x98, 0x36, 0xBE, 0x88, 0x9E])


def _fields(**overrides):
    fields = dict(
        version=2,
        marker=True,
        payload_type=96,
        sequence_number=27023,
        timestamp=3653407706,
        ssrc=476325762,
        csrc=[],
    )
    fields.update(overrides)
    return fields


def _raw_ext_fields(**overrides):
    return _fields(
        extension=True,
        extension_profile=1,
        extensions=[Extension(0, b"\xff\xff\xff\xff")],
        **overrides,
    )


def _plain_packet(**overrides):
    return Packet(payload=BODY, **_fields(**overrides))


BASIC = bytes([
    0x90, 0xE0, 0x69, 0x8F, 0xD9, 0xC2, 0x93, 0xDA, 0x1C, 0x64,
    0x27, 0x82, 0x00, 0x01, 0x00, 0x01, 0xFF, 0xFF, 0xFF, 0xFF, 0x98, 0x36, 0xBE, 0x88, 0x9E,
])


def test_unmarshal_empty_fails():
    with pytest.raises(HeaderSizeInsufficientError):
        Packet().unmarshal(b"")


def test_basic_unmarshal_reuse_and_marshal():
    packet = Packet()
    expected = Packet(payload=BASIC[20:], padding_size=0, **_raw_ext_fields())
    for _ in range(2):
        packet.unmarshal(BASIC)
        assert packet == expected
        assert Header(**_raw_ext_fields()).marshal_size() == 20
        assert expected.marshal_size() == len(BASIC)
        assert packet.marshal() == BASIC


def test_unmarshal_with_padding():
    raw = bytes([0xB0]) + BASIC[1:24] + b"\x04"
    packet = Packet()
    packet.unmarshal(raw)
    assert packet == Packet(payload=raw[20:21], padding_size=4, padding=True, **_raw_ext_fields())


def test_zero_padding_after_nonzero_padding():
    packet = Packet()
    packet.unmarshal(bytes([0xB0]) + BASIC[1:24] + b"\x04")
    packet.unmarshal(BASIC)
    assert packet == Packet(payload=BASIC[20:], padding_size=0, **_raw_ext_fields())


def test_unmarshal_padding_only():
    raw = bytes([0xB0]) + BASIC[1:24] + b"\x05"
    packet = Packet()
    packet.unmarshal(raw)
    assert packet == Packet(payload=b"", padding_size=5, padding=True, **_raw_ext_fields())
    assert len(packet.payload) == 0


def test_unmarshal_excessive_padding():
    raw = bytes([0xB0]) + BASIC[1:24] + b"\x06"
    with pytest.raises(TooSmallError):
        Packet().unmarshal(raw)


def test_marshal_with_padding():
    raw = bytes([0xB0]) + BASIC[1:20] + bytes([0x98, 0x00, 0x00, 0x00, 0x04])
    packet = Packet(payload=raw[20:21], padding_size=4, padding=True, **_raw_ext_fields())
    assert packet.marshal() == raw


def test_marshal_padding_only():
    raw = bytes([0xB0]) + BASIC[1:20] + bytes([0x00, 0x00, 0x00, 0x00, 0x05])
    packet = Packet(payload=b"", padding_size=5, padding=True, **_raw_ext_fields())
    assert packet.marshal() == raw


def test_marshal_padding_into_dirty_buffer_is_zeroed():
    raw = bytes([0xB0]) + BASIC[1:20] + bytes([0x98, 0x00, 0x00, 0x00, 0x04])
    packet = Packet(payload=b"\x98", padding_size=4, padding=True, **_raw_ext_fields())
    buf = bytearray(b"\xff" * 100)
    n = packet.marshal_to(buf)
    assert bytes(buf[:n]) == raw


def test_marshal_invalid_padding():
    packet = Packet(payload=b"\x01", padding=True, padding_size=0, **_fields())
    with pytest.raises(InvalidPaddingError):
        packet.marshal()


def test_marshal_to_short_buffer():
    packet = _plain_packet()
    with pytest.raises(ShortBufferError):
        packet.marshal_to(bytearray(14))
    with pytest.raises(ShortBufferError):
        packet.marshal_to(bytearray(5))


def test_extension_errors():
    missing = bytes([0x90, 0x60]) + FIXED[2:]
    with pytest.raises(HeaderSizeInsufficientForExtensionError):
        Packet().unmarshal(missing)
    invalid_length = missing + bytes([0x99, 0x99, 0x99, 0x99])
    with pytest.raises(HeaderSizeInsufficientForExtensionError):
        Packet().unmarshal(invalid_length)
    packet = Packet(extension=True, extension_profile=3, extensions=[Extension(0, b"\x00")])
    with pytest.raises(ExtensionSizeError):
        packet.marshal()


def test_one_byte_extension():
    raw = FIXED + bytes([0xBE, 0xDE, 0x00, 0x01, 0x50, 0xAA, 0x00, 0x00]) + BODY
    parsed = Packet()
    parsed.unmarshal(raw)
    assert parsed.get_extension(5) == b"\xaa"
    packet = Packet(
        payload=raw[20:],
        **_fields(extension=True, extension_profile=0xBEDE, extensions=[Extension(5, b"\xaa")]),
    )
    assert packet.marshal() == raw


def test_one_byte_two_extensions_of_two_bytes():
    raw = FIXED + bytes([0xBE, 0xDE, 0x00, 0x01, 0x10, 0xAA, 0x20, 0xBB]) + BODY
    parsed = Packet()
    parsed.unmarshal(raw)
    assert parsed.get_extension(1) == b"\xaa"
    assert parsed.get_extension(2) == b"\xbb"
    packet = Packet(
        payload=raw[20:],
        **_fields(
            extension=True,
            extension_profile=0xBEDE,
            extensions=[Extension(1, b"\xaa"), Extension(2, b"\xbb")],
        ),
    )
    assert packet.marshal() == raw


@pytest.mark.parametrize("fill", [0x00, 0xFF])
def test_one_byte_multiple_extensions_with_padding(fill):
    raw = FIXED + bytes([
        0xBE, 0xDE, 0x00, 0x03, 0x10, 0xAA, 0x21, 0xBB,
        0xBB, 0x00, 0x00, 0x33, 0xCC, 0xCC, 0xCC, 0xCC,
    ]) + BODY
    packet = Packet()
    packet.unmarshal(raw)
    assert packet.get_extension(1) == b"\xaa"
    assert packet.get_extension(2) == b"\xbb\xbb"
    assert packet.get_extension(3) == b"\xcc" * 4

    remarshaled = FIXED + bytes([
        0xBE, 0xDE, 0x00, 0x03, 0x10, 0xAA, 0x21, 0xBB,
        0xBB, 0x33, 0xCC, 0xCC, 0xCC, 0xCC, 0x00, 0x00,
    ]) + BODY
    buf = bytearray([fill] * 1000)
    n = packet.marshal_to(buf)
    assert bytes(buf[:n]) == remarshaled


def test_one_byte_multiple_extensions_marshal():
    raw = FIXED + bytes([
        0xBE, 0xDE, 0x00, 0x03, 0x10, 0xAA, 0x21, 0xBB,
        0xBB, 0x33, 0xCC, 0xCC, 0xCC, 0xCC, 0x00, 0x00,
    ]) + BODY
    packet = Packet(
        payload=raw[28:],
        **_fields(
            extension=True,
            extension_profile=0xBEDE,
            extensions=[
                Extension(1, b"\xaa"),
                Extension(2, b"\xbb\xbb"),
                Extension(3, b"\xcc" * 4),
            ],
        ),
    )
    assert packet.marshal() == raw


def test_two_byte_extension():
    raw = FIXED + bytes([0x10, 0x00, 0x00, 0x07, 0x05, 0x18]) + b"\xaa" * 24 + b"\x00\x00" + BODY
    parsed = Packet()
    parsed.unmarshal(raw)
    assert parsed.get_extension(5) == b"\xaa" * 24
    packet = Packet(
        payload=raw[44:],
        **_fields(
            extension=True,
            extension_profile=0x1000,
            extensions=[Extension(5, b"\xaa" * 24)],
        ),
    )
    assert packet.marshal() == raw


def test_two_byte_multiple_extensions_with_padding():
    raw = FIXED + bytes([
        0x10, 0x00, 0x00, 0x03, 0x01, 0x00, 0x02, 0x01,
        0xBB, 0x00, 0x03, 0x04, 0xCC, 0xCC, 0xCC, 0xCC,
    ]) + BODY
    packet = Packet()
    packet.unmarshal(raw)
    assert packet.get_extension(1) == b""
    assert packet.get_extension(2) == b"\xbb"
    assert packet.get_extension(3) == b"\xcc" * 4


def test_two_byte_multiple_extensions_with_large_extension():
    raw = FIXED + bytes([
        0x10, 0x00, 0x00, 0x06, 0x01, 0x00, 0x02, 0x01,
        0xBB, 0x03, 0x11,
    ]) + b"\xcc" * 17 + BODY
    packet = Packet(
        payload=raw[40:],
        **_fields(
            extension=True,
            extension_profile=0x1000,
            extensions=[
                Extension(1, b""),
                Extension(2, b"\xbb"),
                Extension(3, b"\xcc" * 17),
            ],
        ),
    )
    assert packet.marshal() == raw
    parsed = Packet()
    parsed.unmarshal(raw)
    assert parsed.extensions == packet.extensions
    assert parsed.payload == BODY


def test_get_extension_none_when_disabled():
    assert _plain_packet().get_extension(1) is None


def test_del_extension():
    packet = _plain_packet(
        extension=True, extension_profile=0xBEDE, extensions=[Extension(1, b"\xaa")]
    )
    assert packet.get_extension(1) == b"\xaa"
    packet.del_extension(1)
    assert packet.get_extension(1) is None
    with pytest.raises(HeaderExtensionNotFoundError):
        packet.del_extension(1)


def test_get_extension_ids():
    packet = _plain_packet(
        extension=True,
        extension_profile=0xBEDE,
        extensions=[Extension(1, b"\xaa"), Extension(2, b"\xbb")],
    )
    ids = packet.get_extension_ids()
    assert ids == [1, 2]
    assert [packet.get_extension(i) for i in ids] == [b"\xaa", b"\xbb"]


def test_get_extension_ids_empty_when_disabled():
    assert _plain_packet().get_extension_ids() == []


def test_del_extension_when_disabled():
    with pytest.raises(HeaderExtensionsNotEnabledError):
        _plain_packet().del_extension(1)


def test_set_extension_enables_one_byte():
    packet = _plain_packet()
    packet.set_extension(1, b"\xaa\xaa")
    assert packet.extension is True
    assert packet.extension_profile == 0xBEDE
    assert len(packet.extensions) == 1
    assert packet.get_extension(1) == b"\xaa\xaa"


def test_set_extension_16_bytes_uses_one_byte_profile():
    packet = _plain_packet()
    packet.set_extension(1, b"\xaa" * 16)
    assert packet.extension_profile == 0xBEDE


def test_one_byte_set_extension_updates_existing():
    packet = _plain_packet(
        extension=True, extension_profile=0xBEDE, extensions=[Extension(1, b"\xaa")]
    )
    assert packet.get_extension(1) == b"\xaa"
    packet.set_extension(1, b"\xbb")
    assert packet.get_extension(1) == b"\xbb"
    assert len(packet.extensions) == 1


@pytest.mark.parametrize("ext_id", [0, 15])
def test_one_byte_set_extension_invalid_id(ext_id):
    packet = _plain_packet(
        extension=True, extension_profile=0xBEDE, extensions=[Extension(1, b"\xaa")]
    )
    with pytest.raises(ExtensionIDRangeError):
        packet.set_extension(ext_id, b"\xbb")


def test_one_byte_reserved_id_terminates_processing():
    raw = FIXED + bytes([0xBE, 0xDE, 0x00, 0x01, 0xF0, 0xAA]) + b"\x98\x36\xbe\x88\x9e"
    packet = Packet()
    packet.unmarshal(raw)
    assert packet.extensions == []
    assert packet.payload == raw[17:]


def test_one_byte_set_extension_payload_too_large():
    packet = _plain_packet(
        extension=True, extension_profile=0xBEDE, extensions=[Extension(1, b"\xaa")]
    )
    with pytest.raises(ExtensionSizeError):
        packet.set_extension(1, b"\xbb" * 17)


def test_set_extension_enables_two_byte():
    packet = _plain_packet()
    packet.set_extension(1, b"\xaa" * 17)
    assert packet.extension is True
    assert packet.extension_profile == 0x1000
    assert len(packet.extensions) == 1
    assert packet.get_extension(1) == b"\xaa" * 17


def test_two_byte_set_extension_updates_existing():
    packet = _plain_packet(
        extension=True, extension_profile=0x1000, extensions=[Extension(1, b"\xaa")]
    )
    assert packet.get_extension(1) == b"\xaa"
    packet.set_extension(1, b"\xbb" * 17)
    assert packet.get_extension(1) == b"\xbb" * 17


def test_two_byte_set_extension_payload_too_large():
    packet = _plain_packet(
        extension=True, extension_profile=0x1000, extensions=[Extension(1, b"\xaa")]
    )
    with pytest.raises(ExtensionSizeError):
        packet.set_extension(1, b"\xbb" * 256)


def test_set_extension_too_large_on_one_byte_profile():
    packet = _plain_packet(
        extension=True, extension_profile=0xBEDE, extensions=[Extension(1, b"\xaa")]
    )
    with pytest.raises(ExtensionSizeError):
        packet.set_extension(1, b"\xbb" * 256)


@pytest.mark.parametrize("profile", [b"\xbe\xde", b"\x10\x00"])
def test_rfc8285_padding_overrun(profile):
    data = bytes([0b00010000]) + bytes(11) + profile + bytes([0, 1, 0, 0, 0, 1])
    with pytest.raises(HeaderSizeInsufficientForExtensionError):
        Header().unmarshal(data)


def test_rfc3550_set_extension_id_zero():
    packet = _plain_packet(
        extension=True, extension_profile=0x1111, extensions=[Extension(0, b"\xaa")]
    )
    packet.set_extension(0, b"\xbb")
    assert packet.get_extension(0) == b"\xbb"


def test_rfc3550_set_extension_nonzero_id():
    packet = _plain_packet(extension=True, extension_profile=0x1111)
    with pytest.raises(ExtensionIDRangeError):
        packet.set_extension(1, b"\xbb")


@pytest.mark.parametrize(
    "data, error",
    [
        (bytes([0x80, 0xE0, 0x69, 0x8F, 0xD9, 0xC2, 0x93, 0xDA, 0x1C, 0x64, 0x27]),
         HeaderSizeInsufficientError),
        (bytes([0x81, 0xE0, 0x69, 0x8F, 0xD9, 0xC2, 0x93, 0xDA, 0x1C, 0x64, 0x27, 0x82]),
         HeaderSizeInsufficientError),
        (bytes([0x90, 0xE0, 0x69, 0x8F, 0xD9, 0xC2, 0x93, 0xDA, 0x1C, 0x64, 0x27, 0x82]),
         HeaderSizeInsufficientForExtensionError),
        (FIXED + bytes([0xBE, 0xDE, 0x00, 0x03]),
         HeaderSizeInsufficientForExtensionError),
        (FIXED + bytes([0xBE, 0xDE, 0x00, 0x01, 0x12, 0x00]),
         HeaderSizeInsufficientForExtensionError),
    ],
    ids=[
        "ShortHeader", "MissingCSRC", "MissingExtension",
        "MissingExtensionData", "MissingExtensionDataPayload",
    ],
)
def test_unmarshal_error_handling(data, error):
    with pytest.raises(error):
        Header().unmarshal(data)


def test_roundtrip():
    raw = bytes([
        0x00, 0x10, 0x23, 0x45, 0x12, 0x34, 0x45, 0x67, 0xCC, 0xDD, 0xEE, 0xFF,
        0x00, 0x11, 0x22, 0x33, 0x44, 0x55, 0x66, 0x77,
    ])
    packet = Packet()
    packet.unmarshal(raw)
    assert packet.payload == raw[12:]
    assert packet.marshal() == raw
    assert packet.payload == raw[12:]


def test_header_unmarshal_returns_length_with_csrc():
    raw = bytes([0x82, 0x60, 0, 1, 0, 0, 0, 2, 0, 0, 0, 3, 0, 0, 0, 4, 0, 0, 0, 5, 0xAB])
    header = Header()
    assert header.unmarshal(raw) == 20
    assert header.csrc == [4, 5]
    assert header.marshal() == raw[:20]


def test_clone_header():
    header = Header(**_raw_ext_fields())
    clone = header.clone()
    assert clone == header
    header.csrc.append(1)
    assert clone.csrc == []
    header.extensions.append(Extension(1, b"\x1f"))
    assert clone.extensions == [Extension(0, b"\xff\xff\xff\xff")]


def test_clone_packet():
    raw = FIXED + bytes([0xBE, 0xDE, 0x00, 0x01, 0x50, 0xAA, 0x00, 0x00]) + BODY
    packet = Packet(payload=bytearray(raw[20:]))
    clone = packet.clone()
    assert clone == packet
    packet.payload[0] = 0x1F
    assert clone.payload[0] == 0x98


def test_packet_str():
    packet = _plain_packet()
    assert str(packet) == (
        "RTP PACKET:\n"
        "\tVersion: 2\n"
        "\tMarker: true\n"
        "\tPayload Type: 96\n"
        "\tSequence Number: 27023\n"
        "\tTimestamp: 3653407706\n"
        "\tSSRC: 476325762 (1c642782)\n"
        "\tPayload Length: 5\n"
    )