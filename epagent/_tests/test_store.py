from __future__ import annotations

from pathlib import Path

import pytest

from epagent.store import AppHostConfigStore
from epguard.core.errors import UnitApplyError


def test_read_units(apphost: Path) -> None:
    assert AppHostConfigStore(apphost).read_units() == {
        "Default Web Site/OWA": "None",
        "Default Web Site/ECP": "Allow",
        "Exchange Back End/EWS": None,
    }


def test_set_unit_updates_existing_value(apphost: Path) -> None:
    store = AppHostConfigStore(apphost)
    store.set_unit("Default Web Site/OWA", "Allow")

    units = store.read_units()
    assert units["Default Web Site/OWA"] == "Allow"
    assert units["Default Web Site/ECP"] == "Allow"


def test_set_unit_creates_missing_elements(apphost: Path) -> None:
    store = AppHostConfigStore(apphost)
    store.set_unit("Exchange Back End/EWS", "Require")
    assert store.read_units()["Exchange Back End/EWS"] == "Require"


def test_set_unit_keeps_comments(apphost: Path) -> None:
    AppHostConfigStore(apphost).set_unit("Default Web Site/OWA", "Allow")
    assert "sitio por defecto" in apphost.read_text(encoding="utf-8")


def test_set_unit_unknown_location(apphost: Path) -> None:
    with pytest.raises(UnitApplyError) as exc:
        AppHostConfigStore(apphost).set_unit("Default Web Site/Missing", "Allow")
    assert exc.value.unit_name == "Default Web Site/Missing"


def test_set_unit_rejects_invalid_value(apphost: Path) -> None:
    before = apphost.read_text(encoding="utf-8")
    with pytest.raises(UnitApplyError):
        AppHostConfigStore(apphost).set_unit("Default Web Site/OWA", "Sometimes")
    assert apphost.read_text(encoding="utf-8") == before


def test_set_unit_on_broken_xml(tmp_path: Path) -> None:
    path = tmp_path / "applicationHost.config"
    path.write_text("<configuration><location", encoding="utf-8")
    with pytest.raises(UnitApplyError):
        AppHostConfigStore(path).set_unit("Default Web Site/OWA", "Allow")
