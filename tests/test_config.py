from pathlib import Path

from scanlink.config import DEFAULT_OUTPUT_PINS, load_config, save_config
from scanlink.core.models import Category


def test_load_config_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "scanlink.cfg")

    assert config.backend.base_url == "http://localhost:8000"
    assert config.backend.request_timeout_seconds == 5.0
    assert config.device.blink_count == 3
    assert config.device.blink_interval_seconds == 0.3
    assert config.device.settle_delay_seconds == 1.0
    assert config.device.idle_reinit_seconds == 60.0
    assert config.device.connectivity_host == "localhost"
    assert config.device.connectivity_port == 8000
    assert config.outputs == DEFAULT_OUTPUT_PINS
    assert len(config.identities) == 0
    assert config.client.stream_path == "/ws/orders"
    assert config.resilience.reconnect_max_seconds == 30.0
    assert config.resilience.health_enabled is False


def test_load_config_reads_identities_and_outputs(tmp_path: Path) -> None:
    config_path = tmp_path / "scanlink.cfg"
    config_path.write_text(
        """
[backend]
base_url = https://orders.example.com/

[identities]
a9 6c 6a 05 = John Marwin
0412AB7F = Ana Ruiz
not-a-card = Nobody

[outputs]
Toy Guns = 5
Robots = 9
""".strip()
        + "\n",
        encoding="utf-8",
    )

    config = load_config(config_path)

    assert config.backend.base_url == "https://orders.example.com"
    assert config.device.connectivity_host == "orders.example.com"
    assert config.device.connectivity_port == 443
    assert config.identities.lookup("A9 6C 6A 05") == "John Marwin"
    assert config.identities.lookup("04 12 AB 7F") == "Ana Ruiz"
    assert len(config.identities) == 2
    assert config.outputs[Category.TOY_GUNS] == 5
    assert config.outputs[Category.DOLLS] == DEFAULT_OUTPUT_PINS[Category.DOLLS]


def test_load_config_clamps_device_values(tmp_path: Path) -> None:
    config_path = tmp_path / "scanlink.cfg"
    config_path.write_text(
        "[device]\nblink_count = 0\nsettle_delay_seconds = -2\n", encoding="utf-8"
    )

    config = load_config(config_path)

    assert config.device.blink_count == 1
    assert config.device.settle_delay_seconds == 0.0


def test_load_config_falls_back_on_malformed_values(tmp_path: Path, caplog) -> None:
    config_path = tmp_path / "scanlink.cfg"
    config_path.write_text(
        "[device]\nblink_count = three\nsettle_delay_seconds = soon\n"
        "connectivity_port = http\n\n"
        "[resilience]\nhealth_enabled = maybe\nreconnect_max_seconds = 45\n",
        encoding="utf-8",
    )

    with caplog.at_level("WARNING", logger="scanlink.config"):
        config = load_config(config_path)

    assert config.device.blink_count == 3
    assert config.device.settle_delay_seconds == 1.0
    assert config.device.connectivity_port == 8000
    assert config.resilience.health_enabled is False
    assert config.resilience.reconnect_max_seconds == 45.0
    assert "Invalid integer 'three' for [device] blink_count" in caplog.text


def test_save_config_round_trips_identity_case(tmp_path: Path) -> None:
    config_path = tmp_path / "nested" / "scanlink.cfg"
    config = load_config(config_path)
    config.raw.set("identities", "A9 6C 6A 05", "John Marwin")

    save_config(config)
    reloaded = load_config(config_path)

    assert reloaded.identities.lookup("A9 6C 6A 05") == "John Marwin"
    assert reloaded.raw.has_option("outputs", "Toy Guns")
