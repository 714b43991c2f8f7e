from __future__ import annotations

import struct

from .errors import IdentityMismatch, MalformedResponse, UnexpectedType

ICMP_ECHO_REPLY = 0
ICMP_ECHO_REQUEST = 8

ICMP_HEADER = struct.Struct("!BBHHH")  # type, code, checksum, identifier, sequence
TIMESTAMP = struct.Struct("!Q")  # send time, ns since epoch

ICMP_HEADER_LEN = ICMP_HEADER.size
TIMESTAMP_LEN = TIMESTAMP.size
IPV4_MIN_HEADER_LEN = 20
RECV_BUFSZ = 65535

FILLER = b"a"


def checksum(data: bytes) -> int:
    """Internet checksum (RFC 1071)."""
    if len(data) % 2:
        data += b"\x00"
    s = 0
    for i in range(0, len(data), 2):
        s += data[i] << 8 | data[i + 1]
    # fold carries
    while s >> 16:
        s = (s & 0xFFFF) + (s >> 16)
    return ~s & 0xFFFF


def encode(identifier: int, sequence: int, size: int, now: int) -> bytes:
    """
    Build an ICMPv4 Echo Request.
    Payload = 8-byte big-endian send timestamp + filler, `size` bytes in total.
    """
    if size < TIMESTAMP_LEN:
        raise ValueError(f"packet size must be at least {TIMESTAMP_LEN} bytes, got {size}")
    if not 0 <= identifier <= 0xFFFF:
        raise ValueError(f"identifier out of range: {identifier}")

    payload = TIMESTAMP.pack(now) + FILLER * (size - TIMESTAMP_LEN)
    seq = sequence & 0xFFFF
    header = ICMP_HEADER.pack(ICMP_ECHO_REQUEST, 0, 0, identifier, seq)
    csum = checksum(header + payload)
    return ICMP_HEADER.pack(ICMP_ECHO_REQUEST, 0, csum, identifier, seq) + payload


def _strip_ip_header(data: bytes) -> bytes:
    # Raw IPv4 sockets hand us the IP header too. An ICMP message never starts
    # with a 4 in the high nibble (type < 64), so the version field is enough.
    if data and data[0] >> 4 == 4:
        ihl = (data[0] & 0x0F) * 4
        if ihl < IPV4_MIN_HEADER_LEN or len(data) < ihl:
            raise MalformedResponse(f"truncated IPv4 header ({len(data)} bytes, ihl={ihl})")
        return data[ihl:]
    return data


def decode(expected_identifier: int, expected_sequence: int, data: bytes) -> bytes:
    """
    Validate a received buffer as the Echo Reply to (identifier, sequence)
    and return its payload.
    """
    icmp = _strip_ip_header(data)
    if len(icmp) < ICMP_HEADER_LEN:
        raise MalformedResponse(f"ICMP message too short: {len(icmp)} bytes")
    if checksum(icmp) != 0:
        raise MalformedResponse("bad ICMP checksum")

    icmp_type, code, _csum, identifier, sequence = ICMP_HEADER.unpack_from(icmp)
    if icmp_type != ICMP_ECHO_REPLY:
        raise UnexpectedType(f"ICMP type {icmp_type} code {code} is not an echo reply")
    if identifier != expected_identifier or sequence != expected_sequence & 0xFFFF:
        raise IdentityMismatch(
            f"reply id={identifier} seq={sequence}, "
            f"expected id={expected_identifier} seq={expected_sequence & 0xFFFF}"
        )
    return icmp[ICMP_HEADER_LEN:]


def extract_timestamp(payload: bytes) -> int:
    if len(payload) < TIMESTAMP_LEN:
        raise MalformedResponse(f"payload too short for a timestamp: {len(payload)} bytes")
    (sent_at,) = TIMESTAMP.unpack_from(payload)
    return sent_at
