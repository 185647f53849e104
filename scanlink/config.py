"""Configuration loader for scanlink."""

from __future__ import annotations

import logging
from configparser import ConfigParser
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import urlparse

from . import constants
from .core.models import Category, IdentityTable
from .device.identity import normalize_card_id

LOGGER = logging.getLogger(__name__)

DEFAULT_OUTPUT_PINS: Dict[Category, int] = {
    Category.TOY_GUNS: 17,
    Category.DOLLS: 27,
    Category.VEHICLES: 22,
    Category.PUZZLES: 23,
}


@dataclass(slots=True)
class BackendConfig:
    base_url: str = constants.DEFAULT_BACKEND_URL
    request_timeout_seconds: float = 5.0


@dataclass(slots=True)
class DeviceConfig:
    poll_interval_seconds: float = 0.1
    settle_delay_seconds: float = 1.0
    idle_reinit_seconds: float = 60.0
    blink_count: int = 3
    blink_interval_seconds: float = 0.3
    pattern_interval_seconds: float = 0.15
    connectivity_host: str = "localhost"
    connectivity_port: int = 8000


@dataclass(slots=True)
class ClientConfig:
    session_path: Path = constants.DEFAULT_SESSION_PATH
    stream_path: str = constants.DEFAULT_STREAM_PATH


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = constants.DEFAULT_LOG_PATH
    log_network: bool = False


@dataclass(slots=True)
class ResilienceConfig:
    reconnect_initial_seconds: float = 1.0
    reconnect_max_seconds: float = 30.0
    health_enabled: bool = False
    health_host: str = "127.0.0.1"
    health_port: int = 0


@dataclass(slots=True)
class ScanlinkConfig:
    backend: BackendConfig
    device: DeviceConfig
    client: ClientConfig
    logging: LoggingConfig
    resilience: ResilienceConfig
    raw: ConfigParser
    path: Path
    outputs: Dict[Category, int] = field(
        default_factory=lambda: dict(DEFAULT_OUTPUT_PINS)
    )
    identities: IdentityTable = field(default_factory=IdentityTable)


def _new_parser() -> ConfigParser:
    parser = ConfigParser()
    # card ids and category names are case sensitive keys
    parser.optionxform = str  # type: ignore[assignment, method-assign]
    return parser


def _default_endpoint(base_url: str) -> tuple[str, int]:
    parsed = urlparse(base_url)
    host = parsed.hostname or "localhost"
    port = parsed.port or (443 if parsed.scheme == "https" else 80)
    return host, port


def _parse_outputs(parser: ConfigParser) -> Dict[Category, int]:
    outputs = dict(DEFAULT_OUTPUT_PINS)
    for name, value in parser.items("outputs"):
        category = Category.parse(name)
        if category is None:
            LOGGER.warning("Ignoring output for unknown category %r", name)
            continue
        try:
            outputs[category] = int(value)
        except ValueError:
            LOGGER.warning("Ignoring non-numeric pin %r for %s", value, name)
    return outputs


def _parse_identities(parser: ConfigParser) -> IdentityTable:
    pairs: list[tuple[str, str]] = []
    for card_id, person in parser.items("identities"):
        canonical = normalize_card_id(card_id)
        if not canonical or not person.strip():
            LOGGER.warning("Ignoring malformed identity entry %r", card_id)
            continue
        pairs.append((canonical, person.strip()))
    return IdentityTable.from_pairs(pairs)


def _get_float(parser: ConfigParser, section: str, option: str, default: float) -> float:
    try:
        return parser.getfloat(section, option, fallback=default)
    except ValueError:
        LOGGER.warning(
            "Invalid number %r for [%s] %s; using %s",
            parser.get(section, option),
            section,
            option,
            default,
        )
        return default


def _get_int(parser: ConfigParser, section: str, option: str, default: int) -> int:
    try:
        return parser.getint(section, option, fallback=default)
    except ValueError:
        LOGGER.warning(
            "Invalid integer %r for [%s] %s; using %s",
            parser.get(section, option),
            section,
            option,
            default,
        )
        return default


def _get_bool(parser: ConfigParser, section: str, option: str, default: bool) -> bool:
    try:
        return parser.getboolean(section, option, fallback=default)
    except ValueError:
        LOGGER.warning(
            "Invalid boolean %r for [%s] %s; using %s",
            parser.get(section, option),
            section,
            option,
            default,
        )
        return default


def load_config(path: Optional[Path] = None) -> ScanlinkConfig:
    """Load configuration from disk, applying defaults where necessary."""

    config_path = path or constants.DEFAULT_CONFIG_PATH
    parser = _new_parser()
    parser.read_dict(
        {
            "backend": {
                "base_url": constants.DEFAULT_BACKEND_URL,
                "request_timeout_seconds": "5.0",
            },
            "device": {
                "poll_interval_seconds": "0.1",
                "settle_delay_seconds": "1.0",
                "idle_reinit_seconds": "60.0",
                "blink_count": "3",
                "blink_interval_seconds": "0.3",
                "pattern_interval_seconds": "0.15",
            },
            "outputs": {
                category.value: str(pin) for category, pin in DEFAULT_OUTPUT_PINS.items()
            },
            "identities": {},
            "client": {
                "session_path": str(constants.DEFAULT_SESSION_PATH),
                "stream_path": constants.DEFAULT_STREAM_PATH,
            },
            "logging": {
                "level": "INFO",
                "path": str(constants.DEFAULT_LOG_PATH),
                "log_network": "false",
            },
            "resilience": {
                "reconnect_initial_seconds": "1.0",
                "reconnect_max_seconds": "30.0",
                "health_enabled": "false",
                "health_host": "127.0.0.1",
                "health_port": "0",
            },
        }
    )

    if config_path.exists():
        parser.read(config_path)

    backend = BackendConfig(
        base_url=parser.get("backend", "base_url").rstrip("/"),
        request_timeout_seconds=max(
            0.1, _get_float(parser, "backend", "request_timeout_seconds", 5.0)
        ),
    )

    default_host, default_port = _default_endpoint(backend.base_url)
    defaults = DeviceConfig()

    device = DeviceConfig(
        poll_interval_seconds=max(
            0.0,
            _get_float(
                parser, "device", "poll_interval_seconds", defaults.poll_interval_seconds
            ),
        ),
        settle_delay_seconds=max(
            0.0,
            _get_float(
                parser, "device", "settle_delay_seconds", defaults.settle_delay_seconds
            ),
        ),
        idle_reinit_seconds=max(
            1.0,
            _get_float(
                parser, "device", "idle_reinit_seconds", defaults.idle_reinit_seconds
            ),
        ),
        blink_count=max(
            1, _get_int(parser, "device", "blink_count", defaults.blink_count)
        ),
        blink_interval_seconds=max(
            0.0,
            _get_float(
                parser,
                "device",
                "blink_interval_seconds",
                defaults.blink_interval_seconds,
            ),
        ),
        pattern_interval_seconds=max(
            0.0,
            _get_float(
                parser,
                "device",
                "pattern_interval_seconds",
                defaults.pattern_interval_seconds,
            ),
        ),
        connectivity_host=parser.get(
            "device", "connectivity_host", fallback=default_host
        ),
        connectivity_port=_get_int(parser, "device", "connectivity_port", default_port),
    )

    client = ClientConfig(
        session_path=Path(
            parser.get(
                "client", "session_path", fallback=str(constants.DEFAULT_SESSION_PATH)
            )
        ).expanduser(),
        stream_path=parser.get(
            "client", "stream_path", fallback=constants.DEFAULT_STREAM_PATH
        ),
    )

    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=Path(
            parser.get("logging", "path", fallback=str(constants.DEFAULT_LOG_PATH))
        ).expanduser(),
        log_network=_get_bool(parser, "logging", "log_network", False),
    )

    reconnect_initial = max(
        0.0, _get_float(parser, "resilience", "reconnect_initial_seconds", 1.0)
    )
    resilience = ResilienceConfig(
        reconnect_initial_seconds=reconnect_initial,
        reconnect_max_seconds=max(
            reconnect_initial,
            _get_float(parser, "resilience", "reconnect_max_seconds", 30.0),
        ),
        health_enabled=_get_bool(parser, "resilience", "health_enabled", False),
        health_host=parser.get("resilience", "health_host", fallback="127.0.0.1"),
        health_port=_get_int(parser, "resilience", "health_port", 0),
    )

    return ScanlinkConfig(
        backend=backend,
        device=device,
        client=client,
        logging=logging_config,
        resilience=resilience,
        raw=parser,
        path=config_path,
        outputs=_parse_outputs(parser),
        identities=_parse_identities(parser),
    )


def save_config(config: ScanlinkConfig) -> None:
    """Persist the current configuration to disk."""

    config_path = config.path
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as stream:
        config.raw.write(stream)
