from __future__ import annotations

import asyncio
import logging
import socket
from typing import Optional, Protocol

from .errors import ReceiveError, SendError, TransportOpenError
from .logger import get_logger
from .packet import RECV_BUFSZ

log: logging.Logger = get_logger().getChild("transport")


class Transport(Protocol):
    async def send(self, packet: bytes) -> None: ...

    async def receive(self) -> bytes: ...

    def close(self) -> None: ...


class IcmpTransport:
    """
    Raw IPv4 ICMP socket bound to one destination, driven by the asyncio loop.
    Every ICMP message arriving at the host is delivered to receive();
    correlation is the caller's job.
    """

    def __init__(self, address: str, sock: socket.socket) -> None:
        self.address = address
        self._sock: Optional[socket.socket] = sock

    @classmethod
    def open(cls, address: str) -> "IcmpTransport":
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_ICMP)
        except PermissionError as e:
            raise TransportOpenError(
                f"cannot open raw ICMP socket (root privileges required): {e}"
            ) from e
        except OSError as e:
            raise TransportOpenError(f"cannot open raw ICMP socket: {e}") from e
        sock.setblocking(False)
        log.debug("opened raw ICMP socket for %s", address)
        return cls(address, sock)

    def _require_sock(self) -> socket.socket:
        if self._sock is None:
            raise RuntimeError("transport is closed")
        return self._sock

    async def send(self, packet: bytes) -> None:
        sock = self._require_sock()
        loop = asyncio.get_running_loop()
        try:
            await loop.sock_sendto(sock, packet, (self.address, 0))
        except OSError as e:
            raise SendError(f"cannot send to {self.address}: {e}") from e

    async def receive(self) -> bytes:
        sock = self._require_sock()
        loop = asyncio.get_running_loop()
        try:
            return await loop.sock_recv(sock, RECV_BUFSZ)
        except OSError as e:
            raise ReceiveError(f"cannot read from raw ICMP socket: {e}") from e

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
            log.debug("closed raw ICMP socket for %s", self.address)
