"""Per-connection traffic statistics and finalized-joint throughput."""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from nrschub import clock

_SECS = 60
_MINS = 60
_HOURS = 24
_DAYS = 30

_UNKNOWN_ADDR = "unknown"

PeerAddrResolver = Callable[[str], Optional[str]]


@dataclass
class StatsPerPeriod:
    """Message counts collected over one period."""

    rx_good: int = 0
    rx_bad: int = 0
    tx_total: int = 0

    def increase(self, is_rx: bool, is_good: bool) -> None:
        if is_rx:
            if is_good:
                self.rx_good += 1
            else:
                self.rx_bad += 1
        else:
            self.tx_total += 1

    def is_zero(self) -> bool:
        return self.rx_good == 0 and self.rx_bad == 0 and self.tx_total == 0

    def to_dict(self) -> dict:
        return {
            "rx_good": self.rx_good,
            "rx_bad": self.rx_bad,
            "tx_total": self.tx_total,
        }


def sum_all_stats(stats: Iterable[StatsPerPeriod]) -> StatsPerPeriod:
    """Return a new period holding the field-wise sum of ``stats``."""
    total = StatsPerPeriod()
    for stat in stats:
        total.rx_good += stat.rx_good
        total.rx_bad += stat.rx_bad
        total.tx_total += stat.tx_total
    return total


def _periods(count: int) -> List[StatsPerPeriod]:
    return [StatsPerPeriod() for _ in range(count)]


@dataclass
class ConnStats:
    """Rolling statistics of one connection at four resolutions."""

    peer_addr: str
    secs: List[StatsPerPeriod] = field(default_factory=lambda: _periods(_SECS))
    mins: List[StatsPerPeriod] = field(default_factory=lambda: _periods(_MINS))
    hours: List[StatsPerPeriod] = field(default_factory=lambda: _periods(_HOURS))
    days: List[StatsPerPeriod] = field(default_factory=lambda: _periods(_DAYS))


@dataclass
class LastConnStat:
    """Recent statistics of one connection, as reported over the network."""

    peer_addr: str = ""
    sec: StatsPerPeriod = field(default_factory=StatsPerPeriod)
    min: StatsPerPeriod = field(default_factory=StatsPerPeriod)
    hour: StatsPerPeriod = field(default_factory=StatsPerPeriod)
    day: StatsPerPeriod = field(default_factory=StatsPerPeriod)
    is_connected: bool = False

    def to_dict(self) -> dict:
        return {
            "peer_addr": self.peer_addr,
            "sec": self.sec.to_dict(),
            "min": self.min.to_dict(),
            "hour": self.hour.to_dict(),
            "day": self.day.to_dict(),
            "is_connected": self.is_connected,
        }


@dataclass
class FinalizeJointTPS:
    """Throughput of finalized joints."""

    max_tps: int
    cur_tps: int
    hours_tps: List[float]

    def to_dict(self) -> dict:
        return {
            "max_tps": self.max_tps,
            "cur_tps": self.cur_tps,
            "hours_tps": list(self.hours_tps),
        }


def _ratio(numerator: int, denominator: int) -> float:
    if denominator == 0:
        return math.inf if numerator else math.nan
    return numerator / denominator


class FinalizeJointStats:
    """Counts finalized joints and derives per-second and hourly rates."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count = 0
        self._prev_sec_count = 0
        self._prev_hour_count = 0
        self._prev_hour_time = 0
        self._max_tps = 0
        self._cur_tps = 0
        self._hours_tps: List[float] = [0.0] * _HOURS

    def increase(self) -> None:
        with self._lock:
            self._count += 1

    def update(self, now_ms: Optional[int] = None) -> None:
        """Refresh the rates; meant to be called once a second."""
        if now_ms is None:
            now_ms = clock.now()
        timestamp = now_ms // 1000
        with self._lock:
            count = self._count
            cur_tps = count - self._prev_sec_count
            self._cur_tps = cur_tps
            self._prev_sec_count = count
            if cur_tps > self._max_tps:
                self._max_tps = cur_tps

            prev_hour_time = self._prev_hour_time
            if prev_hour_time == 0:
                self._prev_hour_time = timestamp

            increase = count - self._prev_hour_count
            if timestamp % 3600 == 0:
                self._prev_hour_count = count
                self._prev_hour_time = timestamp

            self._hours_tps[timestamp // 3600 % _HOURS] = _ratio(
                increase, timestamp - prev_hour_time
            )

    def tps_info(self) -> FinalizeJointTPS:
        with self._lock:
            return FinalizeJointTPS(
                max_tps=self._max_tps,
                cur_tps=self._cur_tps,
                hours_tps=list(self._hours_tps),
            )


class Stats:
    """Statistics of all connections plus finalized-joint throughput."""

    def __init__(self, peer_addr_resolver: Optional[PeerAddrResolver] = None) -> None:
        self._lock = threading.Lock()
        self._conn_stats: Dict[str, ConnStats] = {}
        self.finalize_joint_stats = FinalizeJointStats()
        self.peer_addr_resolver: Optional[PeerAddrResolver] = peer_addr_resolver

    def _resolve_peer_addr(self, peer_id: str) -> str:
        resolver = self.peer_addr_resolver
        if resolver is None:
            return _UNKNOWN_ADDR
        return resolver(peer_id) or _UNKNOWN_ADDR

    def conn_stats_update(self, now_ms: Optional[int] = None) -> None:
        """Roll seconds into minutes, minutes into hours and hours into days.

        Only acts on a minute boundary. On a day boundary, connections that
        saw no traffic during the past day are dropped.
        """
        if now_ms is None:
            now_ms = clock.now()
        timestamp = now_ms // 1000
        if timestamp % 60 != 0:
            return

        mins_index = (timestamp // 60) % _MINS
        is_hours = timestamp % 3600 == 0
        hours_index = (timestamp // 3600) % _HOURS
        is_days = timestamp % 86400 == 0
        days_index = (timestamp // 86400) % _DAYS

        with self._lock:
            stale = []
            for peer_id, stat in self._conn_stats.items():
                stat.mins[mins_index] = sum_all_stats(stat.secs)
                stat.secs = _periods(_SECS)
                if is_hours:
                    stat.hours[hours_index] = sum_all_stats(stat.mins)
                    stat.mins = _periods(_MINS)
                if is_days:
                    total_hours = sum_all_stats(stat.hours)
                    stat.days[days_index] = total_hours
                    stat.hours = _periods(_HOURS)
                    if total_hours.is_zero():
                        stale.append(peer_id)
            for peer_id in stale:
                del self._conn_stats[peer_id]

    def all_last_stats(self, now_ms: Optional[int] = None) -> Dict[str, LastConnStat]:
        """Return the latest second, minute, hour and day totals per peer.

        The minute, hour and day totals cover only what has been collected
        since the last roll-over, so they may fall short of a full period.
        """
        if now_ms is None:
            now_ms = clock.now()
        now = now_ms // 1000
        result: Dict[str, LastConnStat] = {}
        with self._lock:
            for peer_id, stat in self._conn_stats.items():
                total_min = sum_all_stats(stat.secs)
                total_hour = sum_all_stats([sum_all_stats(stat.mins), total_min])
                total_day = sum_all_stats([sum_all_stats(stat.hours), total_hour])
                sec = stat.secs[now % _SECS]
                result[peer_id] = LastConnStat(
                    peer_addr=stat.peer_addr,
                    sec=StatsPerPeriod(sec.rx_good, sec.rx_bad, sec.tx_total),
                    min=total_min,
                    hour=total_hour,
                    day=total_day,
                    is_connected=False,
                )
        return result

    def increase_sec(
        self,
        peer_id: str,
        is_rx: bool,
        is_good: bool,
        now_ms: Optional[int] = None,
    ) -> None:
        """Count one message for ``peer_id`` in the current second."""
        if now_ms is None:
            now_ms = clock.now()
        index = now_ms // 1000 % _SECS
        with self._lock:
            existing = self._conn_stats.get(peer_id)
            if existing is not None:
                existing.secs[index].increase(is_rx, is_good)
                return

        new_stats = ConnStats(self._resolve_peer_addr(peer_id))
        new_stats.secs[index].increase(is_rx, is_good)
        with self._lock:
            existing = self._conn_stats.get(peer_id)
            if existing is not None:
                existing.secs[index].increase(is_rx, is_good)
            else:
                self._conn_stats[peer_id] = new_stats

    def peer_id_by_address(self, peer_addr: str) -> Optional[str]:
        with self._lock:
            for peer_id, stat in self._conn_stats.items():
                if stat.peer_addr == peer_addr:
                    return peer_id
        return None


_ALL_STATS = Stats()


def set_peer_addr_resolver(resolver: Optional[PeerAddrResolver]) -> None:
    """Set how new peers' addresses are looked up; ``None`` restores the default."""
    _ALL_STATS.peer_addr_resolver = resolver


def final_joints_increase() -> None:
    _ALL_STATS.finalize_joint_stats.increase()


def update_stats() -> None:
    """Timer entry point, called every second."""
    now_ms = clock.now()
    _ALL_STATS.conn_stats_update(now_ms)
    _ALL_STATS.finalize_joint_stats.update(now_ms)


def increase_stats(peer_id: str, is_rx: bool, is_good: bool) -> None:
    """Count one message; coarser periods are filled by :func:`update_stats`."""
    _ALL_STATS.increase_sec(peer_id, is_rx, is_good)


def get_all_last_stats() -> Dict[str, LastConnStat]:
    return _ALL_STATS.all_last_stats()


def get_peer_id_by_address(peer_addr: str) -> Optional[str]:
    return _ALL_STATS.peer_id_by_address(peer_addr)


def get_tps_info() -> FinalizeJointTPS:
    return _ALL_STATS.finalize_joint_stats.tps_info()