from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
import random
from dataclasses import dataclass, replace
from typing import AsyncIterator, Callable, Optional

from .clock import Clock, SystemClock
from .errors import PacketError, TransportError
from .logger import get_logger
from .packet import ICMP_HEADER_LEN, TIMESTAMP_LEN, decode, encode, extract_timestamp
from .stats import Stats, time_in_millis
from .transport import IcmpTransport, Transport

log: logging.Logger = get_logger().getChild("pinger")

DEFAULT_TIMEOUT = 1.0  # seconds
DEFAULT_PACKET_SIZE = 56  # data bytes
DEFAULT_INTERVAL = 1.0  # seconds between probes


@dataclass(frozen=True)
class Options:
    timeout: float = DEFAULT_TIMEOUT
    count: int = 0  # 0 = until stopped
    packet_size: int = DEFAULT_PACKET_SIZE

    def with_defaults(self) -> "Options":
        return replace(
            self,
            timeout=self.timeout if self.timeout > 0 else DEFAULT_TIMEOUT,
            count=max(0, self.count),
            packet_size=self.packet_size if self.packet_size > 0 else DEFAULT_PACKET_SIZE,
        )


@dataclass(frozen=True)
class Outcome:
    sequence: int
    size: int = 0  # bytes of the ICMP reply, 0 on timeout
    rtt_ns: int = 0
    timeout: bool = False

    @property
    def rtt_ms(self) -> float:
        return time_in_millis(self.rtt_ns)


class PingerState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"


class Pinger:
    """
    Sends one echo request at a time to a single IPv4 address and reports
    each attempt as an Outcome.

    Usage:
        pinger = Pinger(Options(count=3))
        task = asyncio.create_task(pinger.ping("192.0.2.1"))
        async for outcome in pinger.outcomes():
            ...
        await task          # re-raises a fatal TransportError, if any
        pinger.stats()
    """

    def __init__(
        self,
        options: Optional[Options] = None,
        *,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        transport_factory: Optional[Callable[[str], Transport]] = None,
        interval: float = DEFAULT_INTERVAL,
    ) -> None:
        self.options = (options or Options()).with_defaults()
        if self.options.packet_size < TIMESTAMP_LEN:
            raise ValueError(
                f"packet size must be at least {TIMESTAMP_LEN} bytes, got {self.options.packet_size}"
            )
        self._clock: Clock = clock or SystemClock()
        self._identifier = (rng or random.Random()).randint(0, 0xFFFF)
        self._transport_factory = transport_factory or IcmpTransport.open
        self._interval = max(0.0, float(interval))

        self._state = PingerState.IDLE
        self._sequence = 0
        self._stats = Stats()
        self._outcomes: asyncio.Queue[Optional[Outcome]] = asyncio.Queue()
        self._stop = asyncio.Event()
        self.error: Optional[TransportError] = None

    @property
    def identifier(self) -> int:
        return self._identifier

    @property
    def state(self) -> PingerState:
        return self._state

    def stop(self) -> None:
        """Ask the drive loop to finish at the next cycle boundary. Idempotent."""
        if self._state in (PingerState.STOPPED, PingerState.FAILED):
            return
        if not self._stop.is_set():
            log.debug("stop requested")
            self._stop.set()

    def stats(self) -> Stats:
        return self._stats.snapshot()

    async def outcomes(self) -> AsyncIterator[Outcome]:
        """Yield outcomes in sequence order until the run ends."""
        while True:
            outcome = await self._outcomes.get()
            if outcome is None:
                # leave the end marker for any later iterator
                self._outcomes.put_nowait(None)
                return
            yield outcome

    # ---------- drive loop ----------

    async def ping(self, address: str) -> None:
        if self._state is not PingerState.IDLE:
            raise RuntimeError("ping() can only be started once per Pinger")
        self._state = PingerState.RUNNING
        log.debug("pinging %s id=%d %s", address, self._identifier, self.options)

        try:
            transport = self._transport_factory(address)
            with contextlib.closing(transport):
                await self._run(transport)
        except TransportError as e:
            self._state = PingerState.FAILED
            self.error = e
            log.debug("run failed: %s", e)
            raise
        except asyncio.CancelledError:
            self._state = PingerState.STOPPED
            raise
        else:
            self._state = PingerState.STOPPED
        finally:
            self._outcomes.put_nowait(None)

    async def _run(self, transport: Transport) -> None:
        count = self.options.count
        while not self._stop.is_set():
            outcome = await self._attempt(transport, self._sequence)

            if outcome.timeout:
                self._stats.record_timeout()
            else:
                self._stats.record_success(outcome.rtt_ns)
            self._outcomes.put_nowait(outcome)

            self._sequence += 1
            if count and self._sequence == count:
                return

            if await self._stopped_during(self._interval):
                return

    async def _attempt(self, transport: Transport, sequence: int) -> Outcome:
        packet = encode(self._identifier, sequence, self.options.packet_size, self._clock.now())
        await transport.send(packet)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.options.timeout
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return Outcome(sequence=sequence, timeout=True)
            try:
                data = await asyncio.wait_for(transport.receive(), timeout=remaining)
            except asyncio.TimeoutError:
                return Outcome(sequence=sequence, timeout=True)

            try:
                payload = decode(self._identifier, sequence, data)
                sent_at = extract_timestamp(payload)
            except PacketError as e:
                # not ours, or garbled: keep waiting for the real reply
                log.debug("icmp_seq %d: ignoring reply: %s", sequence, e)
                continue

            received_at = self._clock.now()
            return Outcome(
                sequence=sequence,
                size=ICMP_HEADER_LEN + len(payload),
                rtt_ns=received_at - sent_at,
            )

    async def _stopped_during(self, seconds: float) -> bool:
        if self._stop.is_set():
            return True
        if seconds <= 0:
            # still give the consumer a turn
            await asyncio.sleep(0)
            return self._stop.is_set()
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True
