from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from epagent.store import AppHostConfigStore
from epguard.cli.app import EXIT_CONFIG, EXIT_FAILURES, app

runner = CliRunner()

APPHOST = """<?xml version="1.0" encoding="UTF-8"?>
<configuration>
  <location path="Default Web Site/OWA">
    <system.webServer><security><authentication><windowsAuthentication>
      <extendedProtection tokenChecking="None" />
    </windowsAuthentication></authentication></security></system.webServer>
  </location>
  <location path="Default Web Site/ECP">
    <system.webServer><security><authentication><windowsAuthentication>
      <extendedProtection tokenChecking="Allow" />
    </windowsAuthentication></authentication></security></system.webServer>
  </location>
</configuration>
"""


@pytest.fixture
def store(tmp_path: Path) -> Path:
    path = tmp_path / "applicationHost.config"
    path.write_text(APPHOST, encoding="utf-8")
    return path


def _inventory(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "fleet.yaml"
    path.write_text(body, encoding="utf-8")
    return path


def test_plan_does_not_modify_store(tmp_path: Path, store: Path) -> None:
    inventory = _inventory(tmp_path, "servers:\n  - name: LOCAL\n")

    result = runner.invoke(app, ["plan", str(inventory), "--local", str(store)])

    assert result.exit_code == 0, result.output
    assert "1 servidor(es) con cambios pendientes" in result.output
    assert AppHostConfigStore(store).read_units()["Default Web Site/OWA"] == "None"


def test_reconcile_updates_local_store(tmp_path: Path, store: Path) -> None:
    inventory = _inventory(tmp_path, "policy:\n  expected: Allow\nservers:\n  - name: LOCAL\n")

    result = runner.invoke(app, ["reconcile", str(inventory), "--local", str(store), "--yes"])

    assert result.exit_code == 0, result.output
    assert AppHostConfigStore(store).read_units()["Default Web Site/OWA"] == "Allow"
    assert list(tmp_path.glob("applicationHost.config.bak-*"))


def test_reconcile_with_unreachable_server_exits_with_failures(tmp_path: Path, store: Path) -> None:
    inventory = _inventory(
        tmp_path,
        "servers:\n  - name: LOCAL\n  - name: EXCH02\n    reachable: false\n",
    )

    result = runner.invoke(app, ["reconcile", str(inventory), "--local", str(store), "--yes"])

    assert result.exit_code == EXIT_FAILURES
    assert "unreachable" in result.output
    assert AppHostConfigStore(store).read_units()["Default Web Site/OWA"] == "Allow"


def test_reconcile_compliant_fleet_is_noop(tmp_path: Path, store: Path) -> None:
    inventory = _inventory(tmp_path, "policy:\n  units: ['Default Web Site/ECP']\nservers:\n  - name: LOCAL\n")

    result = runner.invoke(app, ["reconcile", str(inventory), "--local", str(store), "--yes"])

    assert result.exit_code == 0, result.output
    assert not list(tmp_path.glob("applicationHost.config.bak-*"))


def test_reconcile_cancelled_without_confirmation(tmp_path: Path, store: Path) -> None:
    inventory = _inventory(tmp_path, "servers:\n  - name: LOCAL\n")

    result = runner.invoke(app, ["reconcile", str(inventory), "--local", str(store)], input="n\n")

    assert result.exit_code == 0
    assert "cancelada" in result.output
    assert AppHostConfigStore(store).read_units()["Default Web Site/OWA"] == "None"


def test_missing_inventory_is_config_error(tmp_path: Path) -> None:
    result = runner.invoke(app, ["plan", str(tmp_path / "nope.yaml")])
    assert result.exit_code == EXIT_CONFIG


def test_duplicate_offline_units_is_config_error(tmp_path: Path, store: Path) -> None:
    inventory = _inventory(
        tmp_path,
        "servers:\n"
        "  - name: LAB01\n"
        "    units:\n"
        "      - name: OWA\n        current: None\n"
        "      - name: OWA\n        current: Allow\n"
        "  - name: LOCAL\n",
    )

    result = runner.invoke(app, ["reconcile", str(inventory), "--local", str(store), "--yes"])

    assert result.exit_code == EXIT_CONFIG, result.output
    assert "OWA" in result.output
    assert AppHostConfigStore(store).read_units()["Default Web Site/OWA"] == "None"


def test_restore_local_backup(tmp_path: Path, store: Path) -> None:
    inventory = _inventory(tmp_path, "servers:\n  - name: LOCAL\n")
    runner.invoke(app, ["reconcile", str(inventory), "--local", str(store), "--yes"])
    [backup] = tmp_path.glob("applicationHost.config.bak-*")

    result = runner.invoke(app, ["restore", "LOCAL", str(backup), "--local", str(store)], input="y\n")

    assert result.exit_code == 0, result.output
    assert AppHostConfigStore(store).read_units()["Default Web Site/OWA"] == "None"
