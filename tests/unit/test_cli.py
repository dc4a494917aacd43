"""
Copyright (c) 2024 Aiven Ltd
See LICENSE for details
"""
from _pytest.capture import CaptureFixture
from kafka_resources.cli import dispatch, main, parse_args
from kafka_resources.container import KafkaResourcesContainer
from pathlib import Path
from tests.utils import FakeKafkaClient, write_topology
from unittest.mock import patch

import json
import pytest

TOPOLOGY = """
    [main]
    type = cluster
    brokers = b1:9092

    [events]
    type = producer
    cluster = main

    [orders]
    type = topic
    topic = orders
    producer = events
"""


@pytest.fixture(name="container")
def fixture_container(kafka_resources_container: KafkaResourcesContainer) -> KafkaResourcesContainer:
    kafka_resources_container.kafka_client.override(FakeKafkaClient())
    return kafka_resources_container


def test_parse_args() -> None:
    args = parse_args(["resolve", "--topology", "/etc/asterisk/kafka.conf", "--verbose"])

    assert args.command == "resolve"
    assert args.topology == "/etc/asterisk/kafka.conf"
    assert args.config is None
    assert args.verbose is True


def test_command_is_required(capsys: CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        parse_args([])

    assert excinfo.value.code == 2


def test_show_version(capsys: CaptureFixture[str]) -> None:
    with patch("kafka_resources.kafka.client.confluent_kafka.libversion", return_value=("2.6.1", 0x020601FF)):
        with pytest.raises(SystemExit) as excinfo:
            main(["show-version"])

    assert excinfo.value.code == 0
    assert capsys.readouterr().out == "librdkafka version currently running against: 2.6.1\n"


def test_resolve_prints_report(tmp_path: Path, container: KafkaResourcesContainer, capsys: CaptureFixture[str]) -> None:
    topology = write_topology(tmp_path / "kafka.conf", TOPOLOGY)

    exit_code = dispatch(parse_args(["resolve", "--topology", str(topology)]), container)

    assert exit_code == 0
    out = capsys.readouterr().out
    assert "1 succeeded, 0 failed" in out
    assert "ok      topic orders (via events)" in out


def test_resolve_reports_failures(tmp_path: Path, container: KafkaResourcesContainer, capsys: CaptureFixture[str]) -> None:
    topology = write_topology(
        tmp_path / "kafka.conf",
        TOPOLOGY
        + """
    [lost]
    type = producer
    cluster = missing
""",
    )

    exit_code = dispatch(parse_args(["resolve", "--topology", str(topology)]), container)

    assert exit_code == 1
    assert "FAILED  producer lost" in capsys.readouterr().out


def test_resolve_uses_settings_file(tmp_path: Path, container: KafkaResourcesContainer, capsys: CaptureFixture[str]) -> None:
    topology = write_topology(tmp_path / "kafka.conf", TOPOLOGY)
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({"topology_file": str(topology), "probe_payload": "ping"}))

    exit_code = dispatch(parse_args(["resolve", "--config", str(settings)]), container)

    assert exit_code == 0
    assert container.config().probe_payload == "ping"
    assert ("produce", ("orders", b"ping")) in container.kafka_client().calls


def test_resolve_declined_without_topology(tmp_path: Path, container: KafkaResourcesContainer) -> None:
    exit_code = dispatch(parse_args(["resolve", "--topology", str(tmp_path / "missing.conf")]), container)

    assert exit_code == 2


def test_main_rejects_invalid_settings(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["resolve", "--config", str(tmp_path / "missing.json")])

    assert excinfo.value.code == 2
