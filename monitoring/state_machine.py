"""主机连通状态机定义。"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional


class HostState(Enum):
    """单个主机的连通状态。"""

    UP = "up"
    DOWN = "down"


class NotificationKind(Enum):
    """通知事件的语义类型。"""

    RESTORED = "restored"
    LOST = "lost"
    HEARTBEAT = "heartbeat"
    STARTUP = "startup"


@dataclass(frozen=True)
class NotificationEvent:
    """一次待发送的通知；发送后即丢弃。"""

    kind: NotificationKind
    message: str
    host: Optional[str] = None


@dataclass(frozen=True)
class NotificationTemplates:
    """用于构建不同事件对应的通知文案。"""

    restored: str = "✅ Connectivity restored to IP: {host}"
    lost: str = "❌ Lost connectivity to IP: {host}"
    heartbeat: str = (
        "✅ Monitoring is active. All IPs are being checked every {interval} seconds."
    )
    startup: str = "🔍 Starting network monitoring for IPs: {hosts}"

    def build_restored(self, host: str) -> NotificationEvent:
        return NotificationEvent(
            NotificationKind.RESTORED, self.restored.format(host=host), host)

    def build_lost(self, host: str) -> NotificationEvent:
        return NotificationEvent(
            NotificationKind.LOST, self.lost.format(host=host), host)

    def build_heartbeat(self, interval: int) -> NotificationEvent:
        return NotificationEvent(
            NotificationKind.HEARTBEAT, self.heartbeat.format(interval=interval))

    def build_startup(self, hosts: Iterable[str]) -> NotificationEvent:
        return NotificationEvent(
            NotificationKind.STARTUP, self.startup.format(hosts=" ".join(hosts)))


class HostStatusTracker:
    """按主机记录 up/down 状态，仅在状态变化时产生通知（边沿触发）。

    所有主机初始化为 ``UP``，避免启动时误报"断开"。未登记的主机视为调用方
    违约，``observe`` 直接抛出 ``KeyError``。
    """

    def __init__(
        self,
        hosts: Iterable[str],
        templates: Optional[NotificationTemplates] = None,
    ) -> None:
        self._templates = templates or NotificationTemplates()
        self._states: Dict[str, HostState] = {
            host: HostState.UP for host in hosts
        }

    @property
    def hosts(self) -> tuple[str, ...]:
        return tuple(self._states)

    def state_of(self, host: str) -> HostState:
        return self._states[host]

    def snapshot(self) -> Dict[str, HostState]:
        """返回当前全部主机状态的副本。"""

        return dict(self._states)

    def observe(self, host: str, reachable: bool) -> Optional[NotificationEvent]:
        previous = self._states[host]

        if reachable and previous is HostState.DOWN:
            self._states[host] = HostState.UP
            return self._templates.build_restored(host)
        if not reachable and previous is not HostState.DOWN:
            self._states[host] = HostState.DOWN
            return self._templates.build_lost(host)
        return None
