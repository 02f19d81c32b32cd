"""
Core: lógica de negocio pura.

ENFORCEMENT (arquitectura limpia):
- Este paquete NO debe importar: epguard.cli, epagent, ni módulos que
  accedan al filesystem o a la red.
- Permitido: typing, pydantic, concurrent.futures, epguard.core.*.
- La CLI y el agente importan desde core; nunca al revés.
"""

from epguard.core.errors import (
    EpGuardError,
    ValidationError,
    ConfigError,
    TransportError,
    BackupError,
    UnitApplyError,
)

__all__ = [
    "EpGuardError",
    "ValidationError",
    "ConfigError",
    "TransportError",
    "BackupError",
    "UnitApplyError",
]
