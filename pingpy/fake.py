from __future__ import annotations

import asyncio
import struct
from collections import deque
from typing import Callable, Deque, Iterable, List, Optional, Union

from .errors import ReceiveError, SendError
from .packet import ICMP_ECHO_REPLY, ICMP_HEADER, ICMP_HEADER_LEN, checksum

# One scripted reaction to a sent request:
#   "echo"  -> reply like a compliant responder
#   "drop"  -> no reply (the attempt times out)
#   bytes   -> deliver these bytes verbatim
#   callable(request) -> deliver whatever it returns
#   list/tuple of the above -> several replies, in order
Action = Union[str, bytes, Callable[[bytes], bytes], Iterable]

_IPV4_HEADER = struct.Struct("!BBHHHBBH4s4s")


def make_echo_reply(
    request: bytes,
    *,
    identifier: Optional[int] = None,
    sequence: Optional[int] = None,
    icmp_type: int = ICMP_ECHO_REPLY,
    ip_header: bool = False,
) -> bytes:
    """
    What an echo responder sends back for `request`: same payload, type 0,
    fresh checksum. identifier/sequence/icmp_type can be overridden to forge
    stray traffic.
    """
    _t, code, _c, req_id, req_seq = ICMP_HEADER.unpack_from(request)
    payload = request[ICMP_HEADER_LEN:]
    ident = req_id if identifier is None else identifier
    seq = req_seq if sequence is None else sequence
    header = ICMP_HEADER.pack(icmp_type, code, 0, ident, seq)
    csum = checksum(header + payload)
    icmp = ICMP_HEADER.pack(icmp_type, code, csum, ident, seq) + payload
    if not ip_header:
        return icmp
    ip = _IPV4_HEADER.pack(
        0x45, 0, 20 + len(icmp), 0, 0, 64, 1, 0,
        bytes([127, 0, 0, 1]), bytes([127, 0, 0, 1]),
    )
    return ip + icmp


class FakeTransport:
    """
    In-memory responder.
    script: sequence of Actions, one consumed per send(). When it runs out,
    `default` is used.
    """

    def __init__(
        self,
        script: Optional[Iterable[Action]] = None,
        default: Action = "echo",
        fail_send_at: Optional[int] = None,
        fail_receive: bool = False,
    ) -> None:
        self.script: Deque[Action] = deque(script or [])
        self.default = default
        self.fail_send_at = fail_send_at
        self.fail_receive = fail_receive
        self.sent: List[bytes] = []
        self.closed = False
        self._inbox: asyncio.Queue[bytes] = asyncio.Queue()

    def _react(self, request: bytes, action: Action) -> None:
        if action == "echo":
            self._inbox.put_nowait(make_echo_reply(request))
        elif action == "drop":
            return
        elif isinstance(action, (bytes, bytearray)):
            self._inbox.put_nowait(bytes(action))
        elif callable(action):
            self._inbox.put_nowait(action(request))
        else:
            for each in action:
                self._react(request, each)

    async def send(self, packet: bytes) -> None:
        if self.closed:
            raise RuntimeError("transport is closed")
        if self.fail_send_at is not None and len(self.sent) == self.fail_send_at:
            raise SendError("scripted send failure")
        self.sent.append(packet)
        action = self.script.popleft() if self.script else self.default
        self._react(packet, action)

    async def receive(self) -> bytes:
        if self.fail_receive:
            raise ReceiveError("scripted receive failure")
        return await self._inbox.get()

    def close(self) -> None:
        self.closed = True
