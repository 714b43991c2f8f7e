from __future__ import annotations

import argparse
import asyncio
import contextlib
import signal
import sys
from typing import List, Optional

from .errors import ResolutionError, TransportError
from .logger import configure_logging, get_logger
from .pinger import DEFAULT_PACKET_SIZE, DEFAULT_TIMEOUT, Options, Pinger
from .render import print_banner, print_error, print_outcome, print_summary
from .util import resolve_host

log = get_logger().getChild("cli")

EXIT_OK = 0
EXIT_FAILURE = 2
EXIT_INTERRUPTED = 130


async def ping_loop(display: str, ip: str, pinger: Pinger) -> int:
    """Run the engine, print every outcome, then the summary. Returns an exit code."""
    print_banner(display, ip, pinger.options.packet_size)

    loop = asyncio.get_running_loop()
    wired: List[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        # add_signal_handler is unix-only
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, pinger.stop)
            wired.append(sig)

    task = asyncio.create_task(pinger.ping(ip))
    try:
        async for outcome in pinger.outcomes():
            print_outcome(outcome, ip)
        await task
    except TransportError as e:
        print_error(f"failed to ping {display}: {e}")
        return EXIT_FAILURE
    finally:
        for sig in wired:
            loop.remove_signal_handler(sig)

    print_summary(display, pinger.stats())
    return EXIT_OK


# ---------- CLI ----------

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(
        prog="pingpy",
        description="Send ICMP echo requests to an IPv4 host and report round-trip times.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    ap.add_argument("host", help="Hostname or IPv4 address to ping")
    ap.add_argument(
        "--count", "-c", type=int, default=0,
        help="Number of requests to send; 0 sends until interrupted",
    )
    ap.add_argument(
        "--packet-size", "-s", type=int, default=DEFAULT_PACKET_SIZE,
        help="Number of data bytes in each request",
    )
    ap.add_argument(
        "--timeout", "-t", type=float, default=DEFAULT_TIMEOUT,
        help="Seconds to wait for each reply",
    )
    ap.add_argument("--verbose", "-v", action="store_true", help="Log stray replies and socket events")

    args = ap.parse_args(argv)
    configure_logging(args.verbose)

    if args.count < 0:
        ap.error("--count must not be negative")

    try:
        pinger = Pinger(Options(timeout=args.timeout, count=args.count, packet_size=args.packet_size))
    except ValueError as e:
        ap.error(str(e))

    try:
        resolved = resolve_host(args.host)
    except ResolutionError as e:
        print(f"failed to resolve host {args.host}: {e}", file=sys.stderr)
        return EXIT_FAILURE
    log.debug("resolved %s to %s", args.host, resolved.ip)

    try:
        return asyncio.run(ping_loop(resolved.display, resolved.ip, pinger))
    except KeyboardInterrupt:
        # signal handlers not wired (e.g. Windows)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    raise SystemExit(main())
