"""
Inventario de la flota (YAML) y política de Extended Protection.

Ejemplo:

    settings:
      ssh_user: administrator
      workers: 4
    policy:
      expected: Allow
      overrides:
        "Default Web Site/PowerShell": Require
      units:            # opcional: solo estas unidades
        - "Default Web Site/OWA"
    servers:
      - name: EXCH01
        host: exch01.corp.local
      - name: LAB01     # snapshot offline, no se recolecta
        units:
          - name: "Default Web Site/OWA"
            current: None
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator, model_validator

from epguard.core.errors import ConfigError
from epguard.core.models import TokenChecking


class PolicyConfig(BaseModel):
    """Valor esperado por unidad"""
    expected: TokenChecking = TokenChecking.ALLOW
    overrides: Dict[str, TokenChecking] = Field(default_factory=dict)
    units: Optional[List[str]] = Field(None, description="Lista blanca de unidades; None = todas")

    def expected_for(self, unit_name: str) -> str:
        return self.overrides.get(unit_name, self.expected).value

    def manages(self, unit_name: str) -> bool:
        return self.units is None or unit_name in self.units


class UnitEntry(BaseModel):
    """Unidad declarada en un snapshot offline"""
    name: str
    current: Optional[str] = None
    expected: Optional[TokenChecking] = None


class ServerEntry(BaseModel):
    """Servidor del inventario"""
    name: str = Field(..., description="Identidad del servidor")
    host: Optional[str] = Field(None, description="Dirección de red (por defecto name)")
    reachable: bool = True
    units: Optional[List[UnitEntry]] = Field(None, description="Snapshot offline; None = recolectar")

    @field_validator("units")
    @classmethod
    def _unique_units(cls, units: Optional[List[UnitEntry]]) -> Optional[List[UnitEntry]]:
        names = [u.name for u in units or []]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Unidades duplicadas: {', '.join(duplicates)}")
        return units

    @property
    def address(self) -> str:
        return self.host or self.name

    @property
    def is_offline(self) -> bool:
        return self.units is not None


class Inventory(BaseModel):
    """Raíz del inventario"""
    settings: Dict[str, Any] = Field(default_factory=dict)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    servers: List[ServerEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_servers(self) -> "Inventory":
        seen = set()
        for server in self.servers:
            if server.name in seen:
                raise ValueError(f"Servidor duplicado en inventario: {server.name}")
            seen.add(server.name)
        return self


def load_inventory(path: Path) -> Inventory:
    """
    Carga y valida el inventario

    Raises:
        ConfigError: archivo inexistente, YAML inválido o estructura incorrecta
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Inventario no encontrado: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error al parsear YAML {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("La raíz del inventario debe ser un mapping")

    try:
        return Inventory(**data)
    except PydanticValidationError as e:
        raise ConfigError(f"Inventario inválido ({path.name}): {e}") from e
