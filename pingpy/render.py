from __future__ import annotations

from typing import List

from rich.console import Console
from rich.text import Text

from .pinger import Outcome
from .stats import Stats

# stdout for results, stderr for fatal errors; logging has its own stderr console.
_console = Console(highlight=False)
_err_console = Console(stderr=True, highlight=False)


def format_banner(display: str, ip: str, packet_size: int) -> str:
    return f"PING {display} ({ip}): {packet_size} data bytes"


def format_outcome(outcome: Outcome, ip: str) -> str:
    if outcome.timeout:
        return f"Request timeout for icmp_seq {outcome.sequence}"
    return f"{outcome.size} bytes from {ip}: icmp_seq={outcome.sequence} time={outcome.rtt_ms:.3f} ms"


def format_summary(display: str, stats: Stats) -> List[str]:
    """The closing block, one string per line."""
    rtt = stats.rtt_summary()
    return [
        "",
        f"--- {display} ping statistics ---",
        (
            f"{stats.transmitted()} packets transmitted, "
            f"{stats.received()} packets received, "
            f"{stats.packet_loss():.1f}% packet loss"
        ),
        f"round-trip min/avg/max/stddev = {rtt.min:.3f}/{rtt.avg:.3f}/{rtt.max:.3f}/{rtt.stddev:.3f} ms",
    ]


def print_banner(display: str, ip: str, packet_size: int) -> None:
    _console.print(Text(format_banner(display, ip, packet_size), style="bold"))


def print_outcome(outcome: Outcome, ip: str) -> None:
    style = "red" if outcome.timeout else ""
    _console.print(Text(format_outcome(outcome, ip), style=style))


def print_summary(display: str, stats: Stats) -> None:
    for line in format_summary(display, stats):
        _console.print(Text(line))


def print_error(message: str) -> None:
    _err_console.print(Text(message, style="bold red"))
