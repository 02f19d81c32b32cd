"""
Transporte local: ejecuta BackupAndApply en el mismo proceso.

Útil cuando EPGuard corre en el propio servidor o en laboratorio, contra un
applicationHost.config accesible en disco.
"""

import threading
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Optional

from epguard.core.errors import BackupError, TransportError
from epguard.core.models import ApplyOutcome
from .apply import backup_and_apply, restore_backup
from .store import AppHostConfigStore


class LocalExecutor:
    """
    Mismo contrato que SSHExecutor, sin red: todos los hosts apuntan al mismo store.

    Los hilos del coordinador comparten un único archivo, así que backup,
    escritura, lectura y restauración se serializan con un lock.
    """

    def __init__(self, store_path: Path):
        self.store = AppHostConfigStore(Path(store_path))
        self._lock = threading.Lock()

    def dispatch(self, host: str, diff: Dict[str, str]) -> ApplyOutcome:
        with self._lock:
            return backup_and_apply(self.store, diff)

    def collect(self, host: str) -> Dict[str, Optional[str]]:
        # Igual que el agente: store ilegible = sin unidades (no data)
        try:
            with self._lock:
                return self.store.read_units()
        except (OSError, ET.ParseError):
            return {}

    def restore(self, host: str, backup: str) -> Dict[str, Optional[str]]:
        try:
            with self._lock:
                previous = restore_backup(self.store, Path(backup))
        except BackupError as e:
            raise TransportError(host, str(e)) from e
        return {"restored": backup, "previous": str(previous)}
