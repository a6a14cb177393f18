# -*- codeing = utf-8 -*-
# @Create: 2023-03-29 3:23 p.m.
# @Update: 2026-10-19 10:05 a.m.
"""Components of the host reachability monitor."""

from . import heartbeat, icmp_probe, network_probe, telegram
from .heartbeat import HeartbeatScheduler
from .network_probe import (
    HostProber,
    ProbeMechanismError,
    RawIcmpProber,
    SubprocessPingProber,
    build_prober,
)
from .service import CycleReport, MonitorLoop
from .state_machine import (
    HostState,
    HostStatusTracker,
    NotificationEvent,
    NotificationKind,
    NotificationTemplates,
)
from .telegram import NotifyError, NotifyResult, TelegramNotifier

__all__ = [
    "CycleReport",
    "HeartbeatScheduler",
    "HostProber",
    "HostState",
    "HostStatusTracker",
    "MonitorLoop",
    "NotificationEvent",
    "NotificationKind",
    "NotificationTemplates",
    "NotifyError",
    "NotifyResult",
    "ProbeMechanismError",
    "RawIcmpProber",
    "SubprocessPingProber",
    "TelegramNotifier",
    "build_prober",
    "heartbeat",
    "icmp_probe",
    "network_probe",
    "telegram",
]
