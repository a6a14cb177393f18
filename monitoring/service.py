# -*- codeing = utf-8 -*-
# @Create: 2023-02-16 3:37 p.m.
# @Update: 2026-10-19 10:05 a.m.
"""Implementation of the monitoring loop."""

from __future__ import annotations

import datetime as _dt
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .heartbeat import HeartbeatScheduler
from .network_probe import HostProber, ProbeMechanismError
from .state_machine import (
    HostStatusTracker,
    NotificationEvent,
    NotificationTemplates,
)
from .telegram import NotifyError, NotifyResult, TelegramNotifier

LOGGER = logging.getLogger(__name__)


@dataclass
class CycleReport:
    """What happened during one monitoring cycle."""

    started_at: _dt.datetime
    results: Dict[str, bool] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)
    events: List[NotificationEvent] = field(default_factory=list)
    deliveries: List[Tuple[NotificationEvent, NotifyResult]] = field(
        default_factory=list)


def _default_clock() -> _dt.datetime:
    return _dt.datetime.now(_dt.UTC)


class MonitorLoop:
    """Probe every host on a fixed interval and send edge-triggered notifications.

    All tracker updates and notifier calls happen on the thread running the
    loop. When ``probe_workers`` is greater than one, only the probes run in a
    thread pool; their results are applied afterwards in host order.
    """

    def __init__(
        self,
        hosts: Iterable[str],
        *,
        interval: int,
        prober: HostProber,
        notifier: TelegramNotifier,
        heartbeat_period: int = 86400,
        debug: bool = False,
        probe_workers: int = 1,
        templates: Optional[NotificationTemplates] = None,
        clock: Optional[Callable[[], _dt.datetime]] = None,
        cycle_handler: Optional[Callable[[CycleReport], None]] = None,
    ) -> None:
        self._hosts = tuple(hosts)
        if not self._hosts:
            raise ValueError("At least one host is required")
        if interval <= 0:
            raise ValueError("Interval must be positive")

        self._interval = interval
        self._prober = prober
        self._notifier = notifier
        self._debug = debug
        self._probe_workers = max(int(probe_workers), 1)
        self._templates = templates or NotificationTemplates()
        self._clock = clock or _default_clock
        self._cycle_handler = cycle_handler or (lambda report: None)
        self._tracker = HostStatusTracker(self._hosts, self._templates)
        self._heartbeat = HeartbeatScheduler(
            interval,
            period=heartbeat_period,
            templates=self._templates,
        )
        self._stop_event = threading.Event()
        self._started = False

    @property
    def hosts(self) -> Tuple[str, ...]:
        return self._hosts

    @property
    def tracker(self) -> HostStatusTracker:
        return self._tracker

    @property
    def heartbeat(self) -> HeartbeatScheduler:
        return self._heartbeat

    def announce_startup(self) -> NotifyResult:
        """Send the one-off message listing every monitored host."""

        self._started = True
        event = self._templates.build_startup(self._hosts)
        return self._dispatch(event)

    def run_cycle(self, now: Optional[_dt.datetime] = None) -> CycleReport:
        report = CycleReport(started_at=now or self._clock())

        outcomes = self._probe_all()
        if self._stop_event.is_set():
            # A shutdown signal also reaches ping children; their failures
            # say nothing about the hosts.
            report.skipped.extend(host for host, _ in outcomes)
            LOGGER.info("monitor.loop.stop_requested discarded=%s",
                        len(outcomes))
            self._notify_cycle_handler(report)
            return report

        for host, outcome in outcomes:
            if outcome is None:
                report.skipped.append(host)
                continue
            report.results[host] = outcome
            event = self._tracker.observe(host, outcome)
            if event is not None:
                report.events.append(event)

        heartbeat = self._heartbeat.maybe_fire(report.started_at)
        if heartbeat is not None:
            report.events.append(heartbeat)

        for event in report.events:
            report.deliveries.append((event, self._dispatch(event)))

        self._notify_cycle_handler(report)
        return report

    def _notify_cycle_handler(self, report: CycleReport) -> None:
        try:
            self._cycle_handler(report)
        except Exception as exc:  # pragma: no cover
            LOGGER.exception("monitor.loop.cycle_handler_error error=%s", exc)

    def run(self) -> None:
        """Run cycles until ``stop`` is called; the current cycle always completes."""

        if not self._started:
            self.announce_startup()

        LOGGER.info("monitor.loop.start hosts=%s interval=%s",
                    " ".join(self._hosts), self._interval)
        while not self._stop_event.is_set():
            self.run_cycle()
            if self._stop_event.wait(self._interval):
                break
        LOGGER.info("monitor.loop.stop")

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def _probe_all(self) -> List[Tuple[str, Optional[bool]]]:
        if self._probe_workers == 1 or len(self._hosts) == 1:
            return [(host, self._probe(host)) for host in self._hosts]

        workers = min(self._probe_workers, len(self._hosts))
        with ThreadPoolExecutor(max_workers=workers,
                                thread_name_prefix="probe") as executor:
            outcomes = list(executor.map(self._probe, self._hosts))
        return list(zip(self._hosts, outcomes))

    def _probe(self, host: str) -> Optional[bool]:
        """Return the probe outcome, or ``None`` when the host must be skipped."""

        try:
            return bool(self._prober.probe(host))
        except ProbeMechanismError as exc:
            LOGGER.error("monitor.probe.mechanism_error host=%s error=%s",
                         host, exc)
        except Exception as exc:
            LOGGER.exception("monitor.probe.unexpected_error host=%s error=%s",
                             host, exc)
        return None

    def _dispatch(self, event: NotificationEvent) -> NotifyResult:
        try:
            result = self._notifier.send(event.message)
        except Exception as exc:
            LOGGER.exception(
                "monitor.notify.unexpected_error kind=%s host=%s error=%s",
                event.kind.value,
                event.host,
                exc,
            )
            result = NotifyResult(NotifyError.TRANSPORT_FAILURE, str(exc))

        self._report_delivery(event, result)
        return result

    def _report_delivery(self, event: NotificationEvent,
                         result: NotifyResult) -> None:
        if result.error is NotifyError.UNCONFIGURED:
            LOGGER.debug("monitor.notify.skipped kind=%s reason=unconfigured",
                         event.kind.value)
            return

        level = logging.INFO if self._debug else logging.DEBUG
        if result.ok:
            LOGGER.log(level, "Telegram notification sent successfully.")
        else:
            LOGGER.log(level,
                       "Failed to send Telegram notification. Error: %s",
                       result.detail)
