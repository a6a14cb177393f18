# -*- codeing = utf-8 -*-
# @Create: 2024-05-12 9:41 p.m.
# @Update: 2026-10-19 10:05 a.m.
"""Command line entry point: ping the configured hosts forever and report to Telegram.

Configuration comes from environment variables, optionally seeded from a
``.env`` file (see ``configuration.load_monitor_config``). The process runs
until SIGINT or SIGTERM, finishing the cycle in progress before it exits.
"""

import logging
import signal
import sys
from typing import Mapping, Optional

import configuration
from monitoring import MonitorLoop, TelegramNotifier, build_prober

LOGGER = logging.getLogger(__name__)


def build_monitor_loop(config: configuration.MonitorConfig) -> MonitorLoop:
    notifier = TelegramNotifier(
        config.telegram_token,
        config.telegram_chat_id,
        timeout=config.request_timeout,
        header=config.notification_header,
    )
    return MonitorLoop(
        config.hosts,
        interval=config.interval,
        prober=build_prober(config.ping_method, config.ping_timeout),
        notifier=notifier,
        heartbeat_period=config.heartbeat_period,
        debug=config.debug,
        probe_workers=config.probe_workers,
    )


def install_signal_handlers(loop: MonitorLoop) -> None:
    """Ask ``loop`` to stop after its current cycle on SIGINT/SIGTERM."""

    def _handle(signum, _frame):
        LOGGER.info("monitor.signal.received signal=%s", signal.Signals(signum).name)
        loop.stop()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def main(environ: Optional[Mapping[str, str]] = None) -> int:
    try:
        config = configuration.load_monitor_config(environ)
    except configuration.ConfigurationError as exc:
        print(f"Error: {exc}. Exiting.", file=sys.stderr)
        return 1

    configuration.configure_logging(config.log_settings)
    if not config.notifications_enabled:
        LOGGER.info(
            "monitor.notify.disabled reason=missing TELEGRAM_BOT_TOKEN/TELEGRAM_CHAT_ID")

    loop = build_monitor_loop(config)
    install_signal_handlers(loop)
    loop.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
