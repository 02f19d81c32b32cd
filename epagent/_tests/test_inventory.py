from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

import pytest

from epagent.collect import build_units, collect_fleet, collect_snapshot
from epagent.inventory import PolicyConfig, ServerEntry, load_inventory
from epagent.local import LocalExecutor
from epagent.settings import load_settings
from epguard.core.errors import ConfigError, TransportError

INVENTORY = """
settings:
  ssh_user: svc-ep
  workers: 3
policy:
  expected: Allow
  overrides:
    "Default Web Site/PowerShell": Require
servers:
  - name: EXCH01
    host: exch01.corp.local
  - name: EXCH02
    reachable: false
  - name: LAB01
    units:
      - name: "Default Web Site/OWA"
        current: None
      - name: "Default Web Site/PowerShell"
        current: Allow
"""


class FakeSource:
    def __init__(self, units: Dict[str, Dict[str, Optional[str]]]) -> None:
        self.units = units
        self.hosts = []

    def collect(self, host: str) -> Dict[str, Optional[str]]:
        self.hosts.append(host)
        if host not in self.units:
            raise TransportError(host, "Connection refused")
        return self.units[host]


@pytest.fixture
def inventory_file(tmp_path: Path) -> Path:
    path = tmp_path / "fleet.yaml"
    path.write_text(INVENTORY, encoding="utf-8")
    return path


def test_load_inventory(inventory_file: Path) -> None:
    inventory = load_inventory(inventory_file)

    assert [s.name for s in inventory.servers] == ["EXCH01", "EXCH02", "LAB01"]
    assert inventory.policy.expected_for("Default Web Site/OWA") == "Allow"
    assert inventory.policy.expected_for("Default Web Site/PowerShell") == "Require"
    assert inventory.servers[2].is_offline
    assert inventory.servers[0].address == "exch01.corp.local"


def test_load_inventory_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_inventory(tmp_path / "nope.yaml")


def test_load_inventory_rejects_duplicates(tmp_path: Path) -> None:
    path = tmp_path / "fleet.yaml"
    path.write_text("servers:\n  - name: A\n  - name: A\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_inventory(path)


def test_load_inventory_rejects_invalid_policy_value(tmp_path: Path) -> None:
    path = tmp_path / "fleet.yaml"
    path.write_text("policy:\n  expected: Sometimes\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_inventory(path)


def test_build_units_respects_allow_list() -> None:
    policy = PolicyConfig(units=["OWA"])
    units = build_units({"OWA": "None", "ECP": "None"}, policy)
    assert [(u.name, u.current_value, u.expected_value) for u in units] == [("OWA", "None", "Allow")]


def test_collect_fleet_mixes_offline_and_live(inventory_file: Path) -> None:
    inventory = load_inventory(inventory_file)
    source = FakeSource({"exch01.corp.local": {"Default Web Site/OWA": "Allow"}})

    snapshots = collect_fleet(inventory, source)

    exch01, exch02, lab01 = snapshots
    assert exch01.reachable and exch01.units[0].expected_value == "Allow"
    assert not exch02.reachable and exch02.units == []
    assert [(u.name, u.current_value, u.expected_value) for u in lab01.units] == [
        ("Default Web Site/OWA", "None", "Allow"),
        ("Default Web Site/PowerShell", "Allow", "Require"),
    ]
    # solo se consulta al servidor que no es offline ni está marcado inalcanzable
    assert source.hosts == ["exch01.corp.local"]


def test_collect_snapshot_transport_failure_is_unreachable() -> None:
    snapshot = collect_snapshot(ServerEntry(name="EXCH09"), FakeSource({}), PolicyConfig())
    assert not snapshot.reachable
    assert snapshot.units == []


def test_local_executor_collect(apphost: Path) -> None:
    snapshot = collect_snapshot(ServerEntry(name="localhost"), LocalExecutor(apphost), PolicyConfig())
    assert {u.name for u in snapshot.units} == {
        "Default Web Site/OWA",
        "Default Web Site/ECP",
        "Exchange Back End/EWS",
    }


def test_settings_env_overrides_inventory(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("EPGUARD_WORKERS", "8")
    monkeypatch.delenv("EPGUARD_SSH_USER", raising=False)
    settings = load_settings({"ssh_user": "svc-ep", "workers": 3}, env_file=tmp_path / "none.env")
    assert settings.ssh_user == "svc-ep"
    assert settings.workers == 8


def test_settings_invalid_value(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("EPGUARD_WORKERS", "0")
    with pytest.raises(ConfigError):
        load_settings(env_file=tmp_path / "none.env")


def test_settings_from_dotenv(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("EPGUARD_REMOTE_PYTHON", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("EPGUARD_REMOTE_PYTHON=/opt/epagent/bin/python\n", encoding="utf-8")
    settings = load_settings(env_file=env_file)
    monkeypatch.delenv("EPGUARD_REMOTE_PYTHON", raising=False)
    assert settings.remote_python == "/opt/epagent/bin/python"


def test_duplicate_offline_units_rejected(tmp_path: Path) -> None:
    path = tmp_path / "fleet.yaml"
    path.write_text(
        "servers:\n"
        "  - name: LAB01\n"
        "    units:\n"
        "      - name: \"Default Web Site/OWA\"\n"
        "        current: None\n"
        "      - name: \"Default Web Site/OWA\"\n"
        "        current: Allow\n",
        encoding="utf-8",
    )

    with pytest.raises(ConfigError) as exc:
        load_inventory(path)
    assert "Default Web Site/OWA" in str(exc.value)
