from __future__ import annotations

import pytest

from epguard.core.diff import diff
from epguard.core.models import ConfigUnit


def _unit(name: str, current: str | None, expected: str) -> ConfigUnit:
    return ConfigUnit(name=name, current_value=current, expected_value=expected)


def test_diff_includes_only_differing_units() -> None:
    units = [
        _unit("Default Web Site/OWA", "None", "Allow"),
        _unit("Default Web Site/ECP", "Allow", "Allow"),
        _unit("Exchange Back End/EWS", "Allow", "Require"),
    ]
    assert diff(units) == {
        "Default Web Site/OWA": "Allow",
        "Exchange Back End/EWS": "Require",
    }


def test_diff_all_matching_is_empty() -> None:
    units = [_unit("VDir1", "Allow", "Allow"), _unit("VDir2", "Require", "Require")]
    assert diff(units) == {}


def test_diff_empty_input() -> None:
    assert diff([]) == {}


def test_diff_unset_current_value_differs() -> None:
    assert diff([_unit("VDir1", None, "None")]) == {"VDir1": "None"}


def test_diff_rejects_duplicate_names() -> None:
    with pytest.raises(AssertionError):
        diff([_unit("VDir1", "None", "Allow"), _unit("VDir1", "Allow", "Allow")])
