# -*- codeing = utf-8 -*-
# @Create: 2024-05-12 9:41 p.m.
# @Update: 2026-10-19 10:05 a.m.
import logging
import os
import re
import sys
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from dotenv import dotenv_values

LOGGER = logging.getLogger(__name__)

ENV_FILE_ENV = "PINGDONG_ENV_FILE"
DEFAULT_ENV_FILE = ".env"

PING_INTERVAL_ENV = "PING_INTERVAL"
IP_ADDRESSES_ENV = "IP_ADDRESSES"
TELEGRAM_BOT_TOKEN_ENV = "TELEGRAM_BOT_TOKEN"
TELEGRAM_CHAT_ID_ENV = "TELEGRAM_CHAT_ID"
DEBUG_MODE_ENV = "DEBUG_MODE"
HEARTBEAT_PERIOD_ENV = "HEARTBEAT_PERIOD"
PING_TIMEOUT_ENV = "PING_TIMEOUT"
PING_METHOD_ENV = "PING_METHOD"
PROBE_WORKERS_ENV = "PROBE_WORKERS"
REQUEST_TIMEOUT_ENV = "REQUEST_TIMEOUT"
NOTIFICATION_HEADER_ENV = "NOTIFICATION_HEADER"

LOG_LEVEL_ENV = "LOG_LEVEL"
LOG_FILE_ENV = "LOG_FILE"
LOG_MAX_SIZE_ENV = "LOG_MAX_SIZE"
LOG_BACKUP_COUNT_ENV = "LOG_BACKUP_COUNT"
LOG_CONSOLE_ENV = "LOG_CONSOLE"
LOG_FORMAT_ENV = "LOG_FORMAT"

REQUIRED_ENV_KEYS = (PING_INTERVAL_ENV, IP_ADDRESSES_ENV)

DEFAULT_HEARTBEAT_PERIOD = 86400
DEFAULT_PING_TIMEOUT = 3.0
DEFAULT_PING_METHOD = "subprocess"
SUPPORTED_PING_METHODS = frozenset({"subprocess", "raw"})
DEFAULT_PROBE_WORKERS = 1
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_NOTIFICATION_HEADER = "🚀 MiniLaunch Notification"

_BOOL_TRUE_VALUES = {"1", "true", "yes", "on"}
_BOOL_FALSE_VALUES = {"0", "false", "no", "off"}

_LOG_HANDLER_FLAG = "_pingdong_managed"
_LOG_HANDLER_KIND = "_pingdong_kind"
_LOG_HANDLER_FILE = "file"
_LOG_HANDLER_CONSOLE = "console"
_DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DEFAULT_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
_DEFAULT_LOG_MAX_BYTES = 10 * 1024 * 1024
_DEFAULT_LOG_BACKUP_COUNT = 5


class ConfigurationError(ValueError):
    """Raised when the monitor cannot start because of missing or invalid settings."""


@dataclass(frozen=True)
class LoggingSettings:
    """Represent the parsed logging configuration values."""

    level_name: str
    level: int
    file_path: Optional[Path]
    max_bytes: int
    backup_count: int
    fmt: str
    datefmt: Optional[str]
    console: bool


@dataclass(frozen=True)
class MonitorConfig:
    """Settings for one monitoring session, loaded once at startup."""

    interval: int
    hosts: Tuple[str, ...]
    heartbeat_period: int = DEFAULT_HEARTBEAT_PERIOD
    debug: bool = False
    telegram_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    ping_timeout: float = DEFAULT_PING_TIMEOUT
    ping_method: str = DEFAULT_PING_METHOD
    probe_workers: int = DEFAULT_PROBE_WORKERS
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    notification_header: str = DEFAULT_NOTIFICATION_HEADER
    log_settings: Optional[LoggingSettings] = field(default=None, compare=False)

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.telegram_token and self.telegram_chat_id)


_SIZE_PATTERN = re.compile(r"(\d+)\s*([kmg]?)b?", flags=re.IGNORECASE)
_SIZE_FACTORS = {"": 1, "k": 1024, "m": 1024**2, "g": 1024**3}


def parse_host_list(raw_value: Optional[str]) -> Tuple[str, ...]:
    """Split a whitespace-separated host list, dropping duplicates in order."""

    hosts: Dict[str, None] = {}
    for token in (raw_value or "").split():
        hosts.setdefault(token, None)
    return tuple(hosts)


def _env_file_path(environ: Mapping[str, str]) -> Path:
    return Path(environ.get(ENV_FILE_ENV) or DEFAULT_ENV_FILE)


def read_environment(
    environ: Optional[Mapping[str, str]] = None,
    *,
    env_file: Optional[Path] = None,
) -> Dict[str, str]:
    """Merge ``.env`` values under the process environment.

    Variables set in the real environment take precedence over the file,
    matching ``load_dotenv(override=False)``.
    """

    environ = os.environ if environ is None else environ
    path = Path(env_file) if env_file is not None else _env_file_path(environ)

    values: Dict[str, str] = {}
    if path.is_file():
        LOGGER.debug("config.env_file.load path=%s", path)
        for key, value in dotenv_values(path).items():
            if value is not None:
                values[key] = value
    else:
        LOGGER.debug("config.env_file.missing path=%s", path)

    values.update(environ)
    return values


def _option(values: Mapping[str, str], name: str) -> Optional[str]:
    value = values.get(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _env_int(values: Mapping[str, str], name: str, *, default: int,
             minimum: int) -> int:
    raw = _option(values, name)
    if raw is None:
        return default
    try:
        result = int(raw)
    except ValueError:
        result = None
    if result is None or result < minimum:
        raise ConfigurationError(
            f"{name} must be an integer >= {minimum}: {raw!r}")
    return result


def _env_float(values: Mapping[str, str], name: str, *,
               default: float) -> float:
    raw = _option(values, name)
    if raw is None:
        return default
    try:
        result = float(raw)
    except ValueError:
        result = None
    if result is None or result <= 0:
        raise ConfigurationError(f"{name} must be a positive number: {raw!r}")
    return result


def _env_bool(values: Mapping[str, str], name: str, *, default: bool) -> bool:
    raw = _option(values, name)
    if raw is None:
        return default
    if raw.lower() in _BOOL_TRUE_VALUES:
        return True
    if raw.lower() in _BOOL_FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean: {raw!r}")


def _env_log_level(values: Mapping[str, str], *,
                   default: str) -> Tuple[str, int]:
    raw = _option(values, LOG_LEVEL_ENV) or default
    name = raw.upper()
    if name == "WARN":
        name = "WARNING"
    levels = logging.getLevelNamesMapping()
    if name in levels:
        return name, levels[name]
    if raw.isdigit():
        level = int(raw)
        return str(logging.getLevelName(level)).upper(), level
    raise ConfigurationError(f"{LOG_LEVEL_ENV} is invalid: {raw!r}")


def _env_size(values: Mapping[str, str], name: str, *, default: int) -> int:
    """Parse byte sizes such as ``512KB`` or ``10MB``."""

    raw = _option(values, name)
    if raw is None:
        return default
    match = _SIZE_PATTERN.fullmatch(raw)
    if not match:
        raise ConfigurationError(f"{name} is invalid: {raw!r}")
    return int(match.group(1)) * _SIZE_FACTORS[match.group(2).lower()]


def get_logging_settings(values: Mapping[str, str], *,
                         debug: bool = False) -> LoggingSettings:
    """Read logging settings from environment-style values."""

    level_name, level_value = _env_log_level(
        values, default="DEBUG" if debug else "WARNING")
    raw_file = _option(values, LOG_FILE_ENV)

    return LoggingSettings(
        level_name=level_name,
        level=level_value,
        file_path=Path(raw_file).expanduser().resolve() if raw_file else None,
        max_bytes=_env_size(values, LOG_MAX_SIZE_ENV,
                            default=_DEFAULT_LOG_MAX_BYTES),
        backup_count=_env_int(values, LOG_BACKUP_COUNT_ENV,
                              default=_DEFAULT_LOG_BACKUP_COUNT, minimum=0),
        fmt=_option(values, LOG_FORMAT_ENV) or _DEFAULT_LOG_FORMAT,
        datefmt=_DEFAULT_LOG_DATEFMT,
        console=_env_bool(values, LOG_CONSOLE_ENV, default=True),
    )


def load_monitor_config(
    environ: Optional[Mapping[str, str]] = None,
    *,
    env_file: Optional[Path] = None,
) -> MonitorConfig:
    """Build ``MonitorConfig`` from the environment and an optional ``.env`` file.

    :raises ConfigurationError: when a required variable is missing or a value
        cannot be parsed.
    """

    values = read_environment(environ, env_file=env_file)

    missing = [key for key in REQUIRED_ENV_KEYS if not _option(values, key)]
    if missing:
        raise ConfigurationError(
            "Missing required configuration: {} (set them in the environment or {})"
            .format(", ".join(missing), env_file or _env_file_path(values)))

    hosts = parse_host_list(values.get(IP_ADDRESSES_ENV))
    if not hosts:
        raise ConfigurationError(f"{IP_ADDRESSES_ENV} must list at least one host")

    ping_method = (_option(values, PING_METHOD_ENV)
                   or DEFAULT_PING_METHOD).lower()
    if ping_method not in SUPPORTED_PING_METHODS:
        raise ConfigurationError(
            f"{PING_METHOD_ENV} must be one of "
            f"{', '.join(sorted(SUPPORTED_PING_METHODS))}: {ping_method!r}")

    debug = _env_bool(values, DEBUG_MODE_ENV, default=False)

    return MonitorConfig(
        interval=_env_int(values, PING_INTERVAL_ENV, default=0, minimum=1),
        hosts=hosts,
        heartbeat_period=_env_int(values, HEARTBEAT_PERIOD_ENV,
                                  default=DEFAULT_HEARTBEAT_PERIOD, minimum=1),
        debug=debug,
        telegram_token=_option(values, TELEGRAM_BOT_TOKEN_ENV),
        telegram_chat_id=_option(values, TELEGRAM_CHAT_ID_ENV),
        ping_timeout=_env_float(values, PING_TIMEOUT_ENV,
                                default=DEFAULT_PING_TIMEOUT),
        ping_method=ping_method,
        probe_workers=_env_int(values, PROBE_WORKERS_ENV,
                               default=DEFAULT_PROBE_WORKERS, minimum=1),
        request_timeout=_env_float(values, REQUEST_TIMEOUT_ENV,
                                   default=DEFAULT_REQUEST_TIMEOUT),
        notification_header=(_option(values, NOTIFICATION_HEADER_ENV)
                             or DEFAULT_NOTIFICATION_HEADER),
        log_settings=get_logging_settings(values, debug=debug),
    )


def _close_handler(handler: logging.Handler) -> None:
    try:
        handler.close()
    except Exception:  # pragma: no cover - best effort cleanup
        pass


def configure_logging(settings: LoggingSettings) -> LoggingSettings:
    """Install console and rotating file handlers on the root logger.

    Handlers added here are tagged so a later call replaces them instead of
    stacking duplicates.
    """

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.level)
    formatter = logging.Formatter(settings.fmt, settings.datefmt or None)

    for handler in list(root_logger.handlers):
        if getattr(handler, _LOG_HANDLER_FLAG, False):
            root_logger.removeHandler(handler)
            _close_handler(handler)

    if settings.file_path is not None:
        settings.file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.fspath(settings.file_path),
            maxBytes=settings.max_bytes,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(settings.level)
        file_handler.setFormatter(formatter)
        setattr(file_handler, _LOG_HANDLER_FLAG, True)
        setattr(file_handler, _LOG_HANDLER_KIND, _LOG_HANDLER_FILE)
        root_logger.addHandler(file_handler)

    if settings.console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(settings.level)
        console_handler.setFormatter(formatter)
        setattr(console_handler, _LOG_HANDLER_FLAG, True)
        setattr(console_handler, _LOG_HANDLER_KIND, _LOG_HANDLER_CONSOLE)
        root_logger.addHandler(console_handler)

    return settings


def reset_logging_configuration() -> None:
    """Remove handlers previously added by ``configure_logging``."""

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, _LOG_HANDLER_FLAG, False):
            root_logger.removeHandler(handler)
            _close_handler(handler)
