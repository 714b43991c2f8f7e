import struct

import pytest

from pingpy.errors import IdentityMismatch, MalformedResponse, UnexpectedType
from pingpy.fake import make_echo_reply
from pingpy.packet import (
    ICMP_ECHO_REQUEST,
    ICMP_HEADER,
    checksum,
    decode,
    encode,
    extract_timestamp,
)

NOW = 1_700_000_000_123_456_789


def test_encode_builds_echo_request_with_timestamp_and_filler():
    pkt = encode(0x1234, 7, 56, NOW)
    icmp_type, code, _csum, ident, seq = ICMP_HEADER.unpack_from(pkt)
    assert (icmp_type, code, ident, seq) == (ICMP_ECHO_REQUEST, 0, 0x1234, 7)
    payload = pkt[8:]
    assert len(payload) == 56
    assert struct.unpack("!Q", payload[:8])[0] == NOW
    assert payload[8:] == b"a" * 48
    # a correct checksum sums to zero over the whole message
    assert checksum(pkt) == 0


def test_encode_minimum_size_is_the_timestamp():
    assert len(encode(1, 0, 8, NOW)) == 16
    with pytest.raises(ValueError):
        encode(1, 0, 7, NOW)


def test_encode_rejects_identifier_out_of_range():
    with pytest.raises(ValueError):
        encode(0x10000, 0, 56, NOW)


def test_encode_wraps_sequence_on_the_wire():
    pkt = encode(1, 0x10005, 16, NOW)
    assert ICMP_HEADER.unpack_from(pkt)[4] == 5


def test_decode_echoed_reply_recovers_timestamp():
    request = encode(4242, 3, 56, NOW)
    payload = decode(4242, 3, make_echo_reply(request))
    assert payload == request[8:]
    assert extract_timestamp(payload) == NOW


def test_decode_strips_ipv4_header():
    request = encode(4242, 3, 32, NOW)
    payload = decode(4242, 3, make_echo_reply(request, ip_header=True))
    assert extract_timestamp(payload) == NOW


def test_decode_matches_wrapped_sequence():
    request = encode(9, 65536 + 2, 16, NOW)
    assert extract_timestamp(decode(9, 65536 + 2, make_echo_reply(request))) == NOW


@pytest.mark.parametrize(
    "overrides",
    [{"identifier": 4243}, {"sequence": 4}],
)
def test_decode_rejects_someone_elses_reply(overrides):
    request = encode(4242, 3, 56, NOW)
    with pytest.raises(IdentityMismatch):
        decode(4242, 3, make_echo_reply(request, **overrides))


def test_decode_rejects_our_own_looped_back_request():
    request = encode(4242, 3, 56, NOW)
    with pytest.raises(UnexpectedType):
        decode(4242, 3, request)


def test_decode_rejects_other_icmp_types():
    request = encode(4242, 3, 56, NOW)
    with pytest.raises(UnexpectedType):
        decode(4242, 3, make_echo_reply(request, icmp_type=3))


@pytest.mark.parametrize("data", [b"", b"\x00\x00\x00", b"\x45\x00\x00"])
def test_decode_rejects_short_buffers(data):
    with pytest.raises(MalformedResponse):
        decode(1, 0, data)


def test_decode_rejects_corrupted_checksum():
    reply = bytearray(make_echo_reply(encode(1, 0, 56, NOW)))
    reply[-1] ^= 0xFF
    with pytest.raises(MalformedResponse):
        decode(1, 0, bytes(reply))


def test_extract_timestamp_needs_eight_bytes():
    with pytest.raises(MalformedResponse):
        extract_timestamp(b"\x00" * 7)


def test_checksum_known_value():
    # RFC 1071 example words 0x0001 0xf203 0xf4f5 0xf6f7 sum to 0xddf2
    data = bytes([0x00, 0x01, 0xF2, 0x03, 0xF4, 0xF5, 0xF6, 0xF7])
    assert checksum(data) == ~0xDDF2 & 0xFFFF
