import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import configuration  # noqa: E402  pylint: disable=wrong-import-position


@pytest.fixture
def missing_env_file(tmp_path):
    return tmp_path / "absent.env"


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    configuration.reset_logging_configuration()


def _write_env(base_dir: Path, content: str) -> Path:
    path = base_dir / ".env"
    path.write_text(content, encoding="utf-8")
    return path


def test_load_from_environment_with_defaults(missing_env_file):
    config = configuration.load_monitor_config(
        {"PING_INTERVAL": "5", "IP_ADDRESSES": "10.0.0.1 10.0.0.2"},
        env_file=missing_env_file,
    )

    assert config.interval == 5
    assert config.hosts == ("10.0.0.1", "10.0.0.2")
    assert config.heartbeat_period == 86400
    assert config.debug is False
    assert config.ping_timeout == 3.0
    assert config.ping_method == "subprocess"
    assert config.probe_workers == 1
    assert config.request_timeout == 10.0
    assert config.notifications_enabled is False
    assert config.log_settings.level == logging.WARNING
    assert config.log_settings.file_path is None


def test_load_from_env_file(tmp_path):
    env_file = _write_env(
        tmp_path,
        "PING_INTERVAL=30\n"
        'IP_ADDRESSES="192.168.1.1   192.168.1.2\t192.168.1.1"\n'
        "TELEGRAM_BOT_TOKEN=123:abc\n"
        "TELEGRAM_CHAT_ID=-1001\n"
        "DEBUG_MODE=true\n"
        "HEARTBEAT_PERIOD=3600\n"
        "PING_METHOD=RAW\n"
        "PROBE_WORKERS=4\n",
    )

    config = configuration.load_monitor_config({}, env_file=env_file)

    assert config.interval == 30
    assert config.hosts == ("192.168.1.1", "192.168.1.2")
    assert config.telegram_token == "123:abc"
    assert config.telegram_chat_id == "-1001"
    assert config.notifications_enabled is True
    assert config.debug is True
    assert config.heartbeat_period == 3600
    assert config.ping_method == "raw"
    assert config.probe_workers == 4
    assert config.log_settings.level == logging.DEBUG


def test_environment_overrides_env_file(tmp_path):
    env_file = _write_env(tmp_path, "PING_INTERVAL=30\nIP_ADDRESSES=10.0.0.1\n")

    config = configuration.load_monitor_config(
        {"PING_INTERVAL": "7"}, env_file=env_file)

    assert config.interval == 7
    assert config.hosts == ("10.0.0.1",)


def test_env_file_path_can_be_set_from_environment(tmp_path):
    env_file = tmp_path / "monitor.env"
    env_file.write_text("PING_INTERVAL=9\nIP_ADDRESSES=a b\n", encoding="utf-8")

    config = configuration.load_monitor_config(
        {configuration.ENV_FILE_ENV: str(env_file)})

    assert config.interval == 9
    assert config.hosts == ("a", "b")


@pytest.mark.parametrize(
    "environ, fragment",
    [
        ({}, "PING_INTERVAL, IP_ADDRESSES"),
        ({"PING_INTERVAL": "5"}, "IP_ADDRESSES"),
        ({"PING_INTERVAL": "5", "IP_ADDRESSES": "   "}, "IP_ADDRESSES"),
        ({"PING_INTERVAL": "0", "IP_ADDRESSES": "h"}, "PING_INTERVAL"),
        ({"PING_INTERVAL": "soon", "IP_ADDRESSES": "h"}, "PING_INTERVAL"),
        ({"PING_INTERVAL": "5", "IP_ADDRESSES": "h", "DEBUG_MODE": "maybe"}, "DEBUG_MODE"),
        ({"PING_INTERVAL": "5", "IP_ADDRESSES": "h", "HEARTBEAT_PERIOD": "-1"}, "HEARTBEAT_PERIOD"),
        ({"PING_INTERVAL": "5", "IP_ADDRESSES": "h", "PING_TIMEOUT": "0"}, "PING_TIMEOUT"),
        ({"PING_INTERVAL": "5", "IP_ADDRESSES": "h", "PING_METHOD": "arp"}, "PING_METHOD"),
        ({"PING_INTERVAL": "5", "IP_ADDRESSES": "h", "PROBE_WORKERS": "0"}, "PROBE_WORKERS"),
        ({"PING_INTERVAL": "5", "IP_ADDRESSES": "h", "REQUEST_TIMEOUT": "x"}, "REQUEST_TIMEOUT"),
        ({"PING_INTERVAL": "5", "IP_ADDRESSES": "h", "LOG_LEVEL": "loud"}, "LOG_LEVEL"),
        ({"PING_INTERVAL": "5", "IP_ADDRESSES": "h", "LOG_MAX_SIZE": "big"}, "LOG_MAX_SIZE"),
    ],
)
def test_invalid_configuration_raises(missing_env_file, environ, fragment):
    with pytest.raises(configuration.ConfigurationError) as excinfo:
        configuration.load_monitor_config(environ, env_file=missing_env_file)

    assert fragment in str(excinfo.value)


def test_configuration_error_is_value_error():
    assert issubclass(configuration.ConfigurationError, ValueError)


def test_parse_host_list_preserves_order_and_drops_duplicates():
    assert configuration.parse_host_list(" b a\nb  c ") == ("b", "a", "c")
    assert configuration.parse_host_list(None) == ()


@pytest.mark.parametrize(
    "value, expected",
    [("10MB", 10 * 1024**2), ("512kb", 512 * 1024), ("2 g", 2 * 1024**3),
     ("4096", 4096), ("", 10 * 1024**2)],
)
def test_log_max_size_units(missing_env_file, value, expected):
    config = configuration.load_monitor_config(
        {"PING_INTERVAL": "5", "IP_ADDRESSES": "h", "LOG_MAX_SIZE": value},
        env_file=missing_env_file,
    )

    assert config.log_settings.max_bytes == expected


@pytest.mark.parametrize("value", ["1.5GB", "-1MB", "10TB"])
def test_log_max_size_rejects_fractions_and_unknown_units(missing_env_file, value):
    with pytest.raises(configuration.ConfigurationError, match="LOG_MAX_SIZE"):
        configuration.load_monitor_config(
            {"PING_INTERVAL": "5", "IP_ADDRESSES": "h", "LOG_MAX_SIZE": value},
            env_file=missing_env_file,
        )


def test_numeric_log_level_is_accepted(missing_env_file):
    config = configuration.load_monitor_config(
        {"PING_INTERVAL": "5", "IP_ADDRESSES": "h", "LOG_LEVEL": "20"},
        env_file=missing_env_file,
    )

    assert config.log_settings.level == logging.INFO
    assert config.log_settings.level_name == "INFO"


def test_explicit_log_level_wins_over_debug(missing_env_file):
    config = configuration.load_monitor_config(
        {"PING_INTERVAL": "5", "IP_ADDRESSES": "h", "DEBUG_MODE": "1", "LOG_LEVEL": "warn"},
        env_file=missing_env_file,
    )

    assert config.log_settings.level_name == "WARNING"


def test_configure_logging_installs_managed_handlers_once(tmp_path, missing_env_file):
    log_path = tmp_path / "logs" / "pingdong.log"
    config = configuration.load_monitor_config(
        {
            "PING_INTERVAL": "5",
            "IP_ADDRESSES": "h",
            "LOG_FILE": str(log_path),
            "LOG_LEVEL": "INFO",
            "LOG_MAX_SIZE": "1MB",
            "LOG_BACKUP_COUNT": "2",
        },
        env_file=missing_env_file,
    )

    configuration.configure_logging(config.log_settings)
    configuration.configure_logging(config.log_settings)

    root_logger = logging.getLogger()
    managed = [
        handler for handler in root_logger.handlers
        if getattr(handler, configuration._LOG_HANDLER_FLAG, False)
    ]
    file_handlers = [h for h in managed if isinstance(h, RotatingFileHandler)]
    assert len(managed) == 2
    assert len(file_handlers) == 1
    assert file_handlers[0].maxBytes == 1024**2
    assert file_handlers[0].backupCount == 2
    assert root_logger.level == logging.INFO

    logging.getLogger("monitoring.service").info("monitor.loop.start hosts=h")
    for handler in managed:
        handler.flush()
    assert "monitor.loop.start" in log_path.read_text(encoding="utf-8")

    configuration.reset_logging_configuration()
    assert not any(
        getattr(handler, configuration._LOG_HANDLER_FLAG, False)
        for handler in root_logger.handlers
    )
