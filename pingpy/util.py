from __future__ import annotations

import contextlib
import socket
from dataclasses import dataclass

from icmplib import resolve
from icmplib.exceptions import NameLookupError

from .errors import ResolutionError


def is_ipv4_literal(s: str) -> bool:
    with contextlib.suppress(OSError):
        socket.inet_pton(socket.AF_INET, s)
        return True
    return False


@dataclass
class ResolvedHost:
    ip: str        # numeric IPv4 for probing
    display: str   # what the user typed, or the ip


def resolve_host(target: str) -> ResolvedHost:
    """Resolve forward to the first IPv4 address."""
    try:
        addresses = resolve(target, family=4)
    except NameLookupError as e:
        raise ResolutionError(f"cannot resolve {target}: {e}") from e
    if not addresses:
        raise ResolutionError(f"cannot resolve {target}: no IPv4 address")
    ip = addresses[0]
    display = ip if is_ipv4_literal(target) else target
    return ResolvedHost(ip=ip, display=display)
