# -*- codeing = utf-8 -*-
# @Create: 2023-03-29 3:23 p.m.
# @Update: 2026-10-19 10:05 a.m.
"""Host reachability probes.

A prober answers one question per call: did ``host`` answer a single echo
request before the deadline? Ordinary network failures (timeout, no route,
unknown host) are reported as ``False``. A broken probe mechanism, such as a
missing ``ping`` binary or a raw socket the process may not open, raises
``ProbeMechanismError`` so callers can tell it apart from "host down".
"""

import logging
import math
import shutil
import socket
import subprocess
import sys
import threading
from typing import List, Optional

from .icmp_probe import IcmpProbe

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 3.0


class ProbeMechanismError(RuntimeError):
    """The probe itself could not run; says nothing about the host."""


class HostProber:
    """Strategy interface that executes a single reachability check."""

    def probe(self, host: str) -> bool:  # pragma: no cover - interface contract
        raise NotImplementedError


def build_ping_command(host: str,
                       timeout: float,
                       *,
                       platform: Optional[str] = None) -> List[str]:
    """Return the argv for a single echo request bounded by ``timeout``."""

    platform = platform or sys.platform
    timeout = max(float(timeout), 0.0)
    if platform.startswith("win"):
        wait_ms = max(int(math.ceil(timeout * 1000)), 1)
        return ["ping", "-n", "1", "-w", str(wait_ms), host]
    wait_seconds = max(int(math.ceil(timeout)), 1)
    if platform == "darwin":
        return ["ping", "-c", "1", "-t", str(wait_seconds), host]
    return ["ping", "-c", "1", "-w", str(wait_seconds), host]


class SubprocessPingProber(HostProber):
    """Probe through the system ``ping`` command."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._timeout = timeout
        self._executable = shutil.which("ping")

    def probe(self, host: str) -> bool:
        if self._executable is None:
            raise ProbeMechanismError("ping command not found: ping")
        command = build_ping_command(host, self._timeout)
        command[0] = self._executable

        try:
            # Own session: a Ctrl-C aimed at the monitor must not reach ping.
            completed = subprocess.run(
                command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=self._timeout + 1,
                check=False,
                start_new_session=True,
            )
        except subprocess.TimeoutExpired:
            LOGGER.info("monitor.ping.subprocess.timeout host=%s timeout=%s",
                        host, self._timeout)
            return False
        except OSError as exc:
            raise ProbeMechanismError(
                f"unable to run {command[0]}: {exc}") from exc

        if completed.returncode == 0:
            LOGGER.debug("monitor.ping.subprocess.success host=%s", host)
            return True

        LOGGER.info("monitor.ping.subprocess.failure host=%s returncode=%s",
                    host, completed.returncode)
        return False


class RawIcmpProber(HostProber):
    """Probe with a hand-built ICMP echo over a raw socket (needs CAP_NET_RAW)."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, *, icmp=None) -> None:
        self._timeout = timeout
        self._icmp = icmp or IcmpProbe()
        self._sequence = 0
        self._sequence_lock = threading.Lock()

    def _next_sequence(self) -> int:
        with self._sequence_lock:
            self._sequence = (self._sequence + 1) & 0xFFFF
            return self._sequence

    def probe(self, host: str) -> bool:
        try:
            dst_addr = socket.gethostbyname(host)
        except socket.gaierror as exc:
            LOGGER.info("monitor.ping.raw.resolve_error host=%s error=%s",
                        host, exc)
            return False

        sequence = self._next_sequence()
        packet = self._icmp.request_ping(sequence)
        try:
            sent_at, rawsocket_resource = self._icmp.raw_socket(dst_addr, packet)
        except PermissionError as exc:
            raise ProbeMechanismError(
                f"raw ICMP socket not permitted: {exc}") from exc
        except OSError as exc:
            LOGGER.info("monitor.ping.raw.send_error host=%s error=%s", host,
                        exc)
            return False

        with rawsocket_resource as rawsocket:
            rtt = self._icmp.reply_ping(sent_at, rawsocket, dst_addr,
                                        sequence, timeout=self._timeout)

        if rtt >= 0:
            LOGGER.debug(
                "monitor.ping.raw.reply host=%s destination=%s sequence=%s rtt_ms=%s",
                host,
                dst_addr,
                sequence,
                int(rtt * 1000),
            )
            return True

        LOGGER.info("monitor.ping.raw.timeout host=%s destination=%s sequence=%s",
                    host, dst_addr, sequence)
        return False


def build_prober(method: str, timeout: float = DEFAULT_TIMEOUT) -> HostProber:
    """Return the prober registered for ``method`` (``subprocess`` or ``raw``)."""

    normalised = (method or "").strip().lower()
    if normalised == "subprocess":
        return SubprocessPingProber(timeout)
    if normalised == "raw":
        return RawIcmpProber(timeout)
    raise ValueError(f"Unknown ping method: {method}")


__all__ = [
    "HostProber",
    "ProbeMechanismError",
    "RawIcmpProber",
    "SubprocessPingProber",
    "build_ping_command",
    "build_prober",
]
