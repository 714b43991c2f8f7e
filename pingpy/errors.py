from __future__ import annotations


class PingError(Exception):
    """Base class for everything the ping engine and its glue raise."""


class ResolutionError(PingError):
    """Host could not be resolved to an IPv4 address."""


# ---------- fatal: end the run ----------

class TransportError(PingError):
    pass


class TransportOpenError(TransportError):
    pass


class SendError(TransportError):
    pass


class ReceiveError(TransportError):
    pass


# ---------- recoverable: a reply we can't use ----------

class PacketError(PingError):
    pass


class MalformedResponse(PacketError):
    pass


class UnexpectedType(PacketError):
    pass


class IdentityMismatch(PacketError):
    pass
