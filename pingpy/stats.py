from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from typing import List, NamedTuple

NS_PER_MS = 1_000_000


def time_in_millis(ns: int) -> float:
    return ns / NS_PER_MS


class RttSummary(NamedTuple):
    min: float
    avg: float
    max: float
    stddev: float


@dataclass
class Stats:
    """
    Cumulative counters for one ping run.
    Updated once per attempt by the engine; everybody else gets a snapshot().
    """

    total_count: int = 0
    success_count: int = 0
    rtts: List[int] = field(default_factory=list)  # ns, one per success

    def record_success(self, rtt_ns: int) -> None:
        self.total_count += 1
        self.success_count += 1
        self.rtts.append(rtt_ns)

    def record_timeout(self) -> None:
        self.total_count += 1

    def transmitted(self) -> int:
        return self.total_count

    def received(self) -> int:
        return self.success_count

    def timeouts(self) -> int:
        return self.total_count - self.success_count

    def packet_loss(self) -> float:
        """Percentage of attempts without a reply; 0.0 when nothing was sent."""
        if self.total_count == 0:
            return 0.0
        return (1.0 - self.success_count / self.total_count) * 100.0

    def rtt_summary(self) -> RttSummary:
        """
        min/avg/max and population standard deviation in milliseconds.
        All zeros when there are no samples.
        """
        if not self.rtts:
            return RttSummary(0.0, 0.0, 0.0, 0.0)
        samples = [time_in_millis(rtt) for rtt in self.rtts]
        return RttSummary(
            min=min(samples),
            avg=statistics.fmean(samples),
            max=max(samples),
            stddev=statistics.pstdev(samples),
        )

    def snapshot(self) -> "Stats":
        return Stats(
            total_count=self.total_count,
            success_count=self.success_count,
            rtts=list(self.rtts),
        )
