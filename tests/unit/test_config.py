"""
Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""

from kafka_resources.config import Config, InvalidConfiguration, read_config
from kafka_resources.typing import FlushPolarity
from pathlib import Path

import json
import pytest


def test_defaults() -> None:
    config = Config()

    assert config.topology_file == "kafka.conf"
    assert config.probe_payload == "test"
    assert config.probe_flush_timeout == 10.0
    assert config.probe_flush_polarity == FlushPolarity.remaining_is_failure
    assert config.verify_connection is False


def test_set_config_defaults_does_not_modify_original() -> None:
    config = Config()
    updated = config.set_config_defaults({"topology_file": "/etc/asterisk/kafka.conf"})

    assert updated.topology_file == "/etc/asterisk/kafka.conf"
    assert config.topology_file == "kafka.conf"


@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"probe_payload": ""}, "probe_payload"),
        ({"probe_flush_timeout": 0}, "probe_flush_timeout"),
        ({"probe_flush_timeout": -1.5}, "probe_flush_timeout"),
        ({"listener_timeout": 0}, "listener_timeout"),
        ({"listener_workers": 0}, "listener_workers"),
    ],
)
def test_invalid_values_are_rejected(overrides: dict[str, object], message: str) -> None:
    with pytest.raises(InvalidConfiguration, match=message):
        Config().set_config_defaults(overrides)


def test_read_config_from_json_file(tmp_path: Path) -> None:
    settings = tmp_path / "settings.json"
    settings.write_text(
        json.dumps(
            {
                "topology_file": "/etc/asterisk/kafka.conf",
                "probe_flush_timeout": 2.5,
                "probe_flush_polarity": "success_is_failure",
            }
        )
    )

    config = read_config(settings)

    assert config.topology_file == "/etc/asterisk/kafka.conf"
    assert config.probe_flush_timeout == 2.5
    assert config.probe_flush_polarity == FlushPolarity.success_is_failure


def test_environment_overrides_json_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({"topology_file": "from-file.conf"}))
    monkeypatch.setenv("KAFKA_RESOURCES_TOPOLOGY_FILE", "from-env.conf")

    assert read_config(settings).topology_file == "from-env.conf"


def test_read_config_missing_file(tmp_path: Path) -> None:
    with pytest.raises(InvalidConfiguration, match="does not exist"):
        read_config(tmp_path / "missing.json")


def test_read_config_validates(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KAFKA_RESOURCES_PROBE_FLUSH_TIMEOUT", "0")

    with pytest.raises(InvalidConfiguration):
        read_config()


def test_string_overrides_are_coerced() -> None:
    config = Config().set_config_defaults(
        {"probe_flush_timeout": "5", "listener_workers": "4", "probe_flush_polarity": "success_is_failure"}
    )

    assert config.probe_flush_timeout == 5.0
    assert config.listener_workers == 4
    assert config.probe_flush_polarity == FlushPolarity.success_is_failure


@pytest.mark.parametrize(
    "overrides",
    [
        {"probe_flush_timeout": "soon"},
        {"listener_workers": "many"},
        {"probe_flush_polarity": "inverted"},
    ],
)
def test_unparsable_overrides_are_rejected(overrides: dict[str, object]) -> None:
    with pytest.raises(InvalidConfiguration, match="has an invalid value"):
        Config().set_config_defaults(overrides)
