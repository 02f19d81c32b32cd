"""
ConfigDiff: cambios mínimos para llevar el estado actual al esperado.
"""

from typing import Dict, Iterable

from epguard.core.models import ConfigUnit


def diff(units: Iterable[ConfigUnit]) -> Dict[str, str]:
    """
    Calcula el diff de un servidor.

    Args:
        units: Unidades con valor actual y esperado (nombres únicos)

    Returns:
        Dict {unidad: valor_esperado} solo con las unidades que difieren
    """
    units = list(units)
    assert len({u.name for u in units}) == len(units), "Nombres de unidad duplicados en el snapshot"

    return {
        unit.name: unit.expected_value
        for unit in units
        if unit.current_value != unit.expected_value
    }
