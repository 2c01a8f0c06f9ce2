"""Statistics for the bridge and its connectors."""

from __future__ import annotations

import bisect
import dataclasses
import threading
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any


class Histogram:
    """A bounded streaming histogram that approximates quantiles.

    Values are kept as weighted bins; once there are more than ``max_bins``
    bins the two closest are merged into their weighted mean.
    """

    def __init__(self, max_bins: int = 60) -> None:
        if max_bins < 1:
            raise ValueError("a histogram needs at least one bin")
        self.max_bins = max_bins
        self._bins: list[list[float]] = []  # [value, count], sorted by value
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    def add(self, value: float) -> None:
        """Record one value."""
        self._count += 1
        index = bisect.bisect_left(self._bins, value, key=lambda b: b[0])
        if index < len(self._bins) and self._bins[index][0] == value:
            self._bins[index][1] += 1
            return
        self._bins.insert(index, [float(value), 1])
        if len(self._bins) > self.max_bins:
            self._merge_closest()

    def _merge_closest(self) -> None:
        bins = self._bins
        i = min(range(len(bins) - 1), key=lambda k: bins[k + 1][0] - bins[k][0])
        (left_value, left_count), (right_value, right_count) = bins[i], bins[i + 1]
        total = left_count + right_count
        bins[i : i + 2] = [[(left_value * left_count + right_value * right_count) / total, total]]

    def quantile(self, q: float) -> float:
        """Approximate value below which a fraction ``q`` of recorded values fall; 0 when empty."""
        if not 0.0 <= q <= 1.0:
            raise ValueError("quantile must be between 0 and 1")
        if not self._bins:
            return 0.0
        target = q * self._count
        seen = 0
        for value, count in self._bins:
            seen += count
            if seen >= target:
                return value
        return self._bins[-1][0]


@dataclass
class ConnectorStats:
    """Statistics for one connector; times are in nanoseconds."""

    name: str = ""
    id: str = ""
    connected: bool = False
    connects: int = 0
    disconnects: int = 0
    bytes_in: int = 0
    bytes_out: int = 0
    messages_in: int = 0
    messages_out: int = 0
    request_count: int = 0
    moving_average: float = 0.0
    quintile_50: float = 0.0
    quintile_75: float = 0.0
    quintile_90: float = 0.0
    quintile_95: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """The JSON form used by the monitoring endpoint."""
        return {
            "name": self.name,
            "id": self.id,
            "connected": self.connected,
            "connects": self.connects,
            "disconnects": self.disconnects,
            "bytes_in": self.bytes_in,
            "bytes_out": self.bytes_out,
            "msg_in": self.messages_in,
            "msg_out": self.messages_out,
            "count": self.request_count,
            "rma": self.moving_average,
            "q50": self.quintile_50,
            "q75": self.quintile_75,
            "q90": self.quintile_90,
            "q95": self.quintile_95,
        }


@dataclass
class BridgeStats:
    """Status of the bridge and all of its connectors."""

    start_time: int = 0
    server_time: int = 0
    uptime: str = ""
    request_count: int = 0
    connections: list[ConnectorStats] = field(default_factory=list)
    http_requests: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """The JSON form used by the monitoring endpoint."""
        return {
            "start_time": self.start_time,
            "current_time": self.server_time,
            "uptime": self.uptime,
            "request_count": self.request_count,
            "connectors": [c.to_dict() for c in self.connections],
            "http_requests": dict(self.http_requests),
        }


def _nanoseconds(req_time: timedelta | int | float) -> float:
    if isinstance(req_time, timedelta):
        return float(req_time // timedelta(microseconds=1) * 1000)
    return float(req_time)


class ConnectorStatsHolder:
    """Thread-safe holder that updates a connector's statistics."""

    def __init__(self, name: str, connector_id: str) -> None:
        self._lock = threading.Lock()
        self._stats = ConnectorStats(name=name, id=connector_id)
        self._histogram = Histogram(60)

    def name(self) -> str:
        return self._stats.name

    def id(self) -> str:
        return self._stats.id

    def add_message_in(self, size: int) -> None:
        with self._lock:
            self._stats.messages_in += 1
            self._stats.bytes_in += size

    def add_message_out(self, size: int) -> None:
        with self._lock:
            self._stats.messages_out += 1
            self._stats.bytes_out += size

    def add_disconnect(self) -> None:
        with self._lock:
            self._stats.disconnects += 1
            self._stats.connected = False

    def add_connect(self) -> None:
        with self._lock:
            self._stats.connects += 1
            self._stats.connected = True

    def _record_time(self, req_time: timedelta | int | float) -> None:
        reqns = _nanoseconds(req_time)
        stats = self._stats
        stats.request_count += 1
        stats.moving_average = ((stats.request_count - 1) * stats.moving_average + reqns) / stats.request_count
        self._histogram.add(reqns)

    def add_request_time(self, req_time: timedelta | int | float) -> None:
        """Record a request time (a timedelta, or a number of nanoseconds)."""
        with self._lock:
            self._record_time(req_time)

    def add_request(self, bytes_in: int, bytes_out: int, req_time: timedelta | int | float) -> None:
        """Record one message in, one out and the request time together."""
        with self._lock:
            self._stats.messages_in += 1
            self._stats.bytes_in += bytes_in
            self._stats.messages_out += 1
            self._stats.bytes_out += bytes_out
            self._record_time(req_time)

    def stats(self) -> ConnectorStats:
        """Refresh the quantiles and return a copy of the statistics."""
        with self._lock:
            self._stats.quintile_50 = self._histogram.quantile(0.5)
            self._stats.quintile_75 = self._histogram.quantile(0.75)
            self._stats.quintile_90 = self._histogram.quantile(0.9)
            self._stats.quintile_95 = self._histogram.quantile(0.95)
            return dataclasses.replace(self._stats)