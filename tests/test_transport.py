import asyncio

import pytest

from pingpy import transport
from pingpy.errors import ReceiveError, SendError, TransportOpenError
from pingpy.transport import IcmpTransport


class StubSocket:
    """Just enough of a non-blocking socket for the event loop's sock_* calls."""

    def __init__(self, send_error=None, recv_error=None, data=b""):
        self.send_error = send_error
        self.recv_error = recv_error
        self.data = data
        self.sent = []
        self.close_calls = 0

    def gettimeout(self):
        return 0.0

    def sendto(self, packet, address):
        if self.send_error:
            raise self.send_error
        self.sent.append((packet, address))
        return len(packet)

    def recv(self, bufsize):
        if self.recv_error:
            raise self.recv_error
        return self.data

    def close(self):
        self.close_calls += 1


@pytest.mark.parametrize("error", [PermissionError("operation not permitted"), OSError("no buffers")])
def test_open_failure_becomes_transport_open_error(monkeypatch, error):
    def refuse(*args, **kwargs):
        raise error

    monkeypatch.setattr(transport.socket, "socket", refuse)
    with pytest.raises(TransportOpenError):
        IcmpTransport.open("192.0.2.1")


def test_send_goes_to_the_destination():
    sock = StubSocket()
    t = IcmpTransport("192.0.2.1", sock)
    asyncio.run(t.send(b"\x08\x00"))
    assert sock.sent == [(b"\x08\x00", ("192.0.2.1", 0))]


def test_send_failure_becomes_send_error():
    t = IcmpTransport("192.0.2.1", StubSocket(send_error=OSError("network unreachable")))
    with pytest.raises(SendError):
        asyncio.run(t.send(b"\x08\x00"))


def test_receive_returns_datagram():
    t = IcmpTransport("192.0.2.1", StubSocket(data=b"\x00\x00"))
    assert asyncio.run(t.receive()) == b"\x00\x00"


def test_receive_failure_becomes_receive_error():
    t = IcmpTransport("192.0.2.1", StubSocket(recv_error=OSError("connection refused")))
    with pytest.raises(ReceiveError):
        asyncio.run(t.receive())


def test_close_is_idempotent():
    sock = StubSocket()
    t = IcmpTransport("192.0.2.1", sock)
    t.close()
    t.close()
    assert sock.close_calls == 1
    with pytest.raises(RuntimeError):
        asyncio.run(t.send(b"\x08\x00"))
