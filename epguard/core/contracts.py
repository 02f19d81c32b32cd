"""
Contratos que deben implementar los colaboradores externos.

El core solo define interfaces; el transporte (SSH, local) y el store
(applicationHost.config) viven en epagent.
"""

from pathlib import Path
from typing import Dict, Optional, Protocol

from epguard.core.models import ApplyOutcome


class RemoteExecutor(Protocol):
    """
    Transporte: ejecuta BackupAndApply en el host indicado.

    Devuelve el ApplyOutcome estructurado o lanza TransportError si no pudo
    entregar el trabajo o leer su resultado (red, auth, timeout, JSON inválido).
    """
    def dispatch(self, host: str, diff: Dict[str, str]) -> ApplyOutcome:
        ...


class ConfigStore(Protocol):
    """Store autoritativo del host: copia a nivel de archivo + escritura por unidad."""

    @property
    def path(self) -> Path:
        """Archivo autoritativo (origen del backup)."""
        ...

    def read_units(self) -> Dict[str, Optional[str]]:
        """Valor actual de cada unidad (None si no está definido)."""
        ...

    def set_unit(self, name: str, value: str) -> None:
        """Escribe el valor de una unidad; lanza UnitApplyError si falla."""
        ...
