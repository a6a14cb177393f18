"""Periodic "still alive" notification timer."""

from __future__ import annotations

import datetime as _dt
from typing import Optional, Union

from .state_machine import NotificationEvent, NotificationTemplates

DEFAULT_HEARTBEAT_PERIOD = _dt.timedelta(seconds=86400)


class HeartbeatScheduler:
    """Fire a heartbeat immediately, then at most once per ``period``."""

    def __init__(
        self,
        interval: int,
        *,
        period: Union[_dt.timedelta, int, float] = DEFAULT_HEARTBEAT_PERIOD,
        templates: Optional[NotificationTemplates] = None,
    ) -> None:
        if not isinstance(period, _dt.timedelta):
            period = _dt.timedelta(seconds=period)
        if period <= _dt.timedelta(0):
            raise ValueError("Heartbeat period must be positive")
        self._interval = interval
        self._period = period
        self._templates = templates or NotificationTemplates()
        self._last_fired: Optional[_dt.datetime] = None

    @property
    def period(self) -> _dt.timedelta:
        return self._period

    @property
    def last_fired(self) -> Optional[_dt.datetime]:
        return self._last_fired

    def maybe_fire(self, now: _dt.datetime) -> Optional[NotificationEvent]:
        if self._last_fired is not None and now - self._last_fired <= self._period:
            return None
        self._last_fired = now
        return self._templates.build_heartbeat(self._interval)
