"""
Tests for YAML configuration loading.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from contract_monitor.config import Config, ConfigError, parse_min_balance
from contract_monitor.netconf import NetworkID

CONFIG = """
settings:
  scrape_interval: 15
  port: 9100
network:
  id: staging
  create3_factory: "0x1234567890123456789012345678901234567890"
  chains:
    - name: omni_evm
      chain_id: 1654
      rpc_url: http://staging
    - name: holesky
      chain_id: 17000
      rpc_url: http://holesky
      decimals: 18
contracts:
  - name: portal
    min_balance: "0.5 ether"
  - name: gas_station
    only_primary_chain: true
    min_balance: 1000
"""


def _write(tmp_path: Path, text: str) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return str(path)


def test_load_config(tmp_path: Path) -> None:
    config = Config(_write(tmp_path, CONFIG))

    assert config.scrape_interval == 15
    assert config.port == 9100
    assert config.settings.health_check_interval == 30
    assert config.network.id == NetworkID.STAGING
    assert [chain.chain_id for chain in config.network.chains] == [1654, 17000]
    assert config.endpoints.by_name_or_id("holesky", 17000) == "http://holesky"
    assert config.create3_factory == "0x1234567890123456789012345678901234567890"

    portal, gas_station = config.contracts
    assert portal.min_balance == 5 * 10**17
    assert portal.address is None
    assert not portal.only_primary_chain
    assert gas_station.only_primary_chain
    assert gas_station.min_balance == 1000


def test_settings_defaults(tmp_path: Path) -> None:
    config = Config(_write(tmp_path, "network:\n  id: mainnet\n  chains: []\n"))

    assert config.scrape_interval == 30
    assert config.port == 8000
    assert config.contracts == []


def test_unknown_network_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        Config(_write(tmp_path, "network:\n  id: nowhere\n  chains: []\n"))


def test_missing_network_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        Config(_write(tmp_path, "settings:\n  port: 8000\n"))


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (42, 42),
        ("42", 42),
        ("1 ether", 10**18),
        ("2.5 gwei", 2_500_000_000),
    ],
)
def test_parse_min_balance(value, expected) -> None:
    assert parse_min_balance(value) == expected


@pytest.mark.parametrize("value", ["lots", "1 parsec", True, None, 1.5])
def test_parse_min_balance_rejects_garbage(value) -> None:
    with pytest.raises(ConfigError):
        parse_min_balance(value)


def test_missing_file_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="Cannot read configuration"):
        Config(str(tmp_path / "absent.yaml"))


def test_malformed_yaml_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        Config(_write(tmp_path, "network: [unclosed\n"))


def test_chain_entry_must_be_mapping(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        Config(_write(tmp_path, "network:\n  id: omega\n  chains:\n    - omni_evm\n"))
