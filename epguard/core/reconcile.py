"""
RemoteApplyCoordinator: recorre los snapshots de la flota, calcula el diff,
despacha BackupAndApply cuando hace falta y clasifica cada servidor.

Máquina de estados por servidor (terminales: UPDATED, UNCHANGED, FAILED):
  inalcanzable           -> FAILED (unreachable), sin llamada remota
  sin unidades           -> FAILED (no data), sin llamada remota
  diff vacío             -> UNCHANGED, sin llamada remota
  transporte falla       -> FAILED (transport failure)
  backup falla           -> FAILED (backup failed, no changes applied)
  backup ok + errores    -> FAILED (partial apply) con errores por unidad
  backup ok + todo ok    -> UPDATED

Un fallo en un servidor nunca interrumpe al resto: la corrida siempre
devuelve una clasificación por servidor. Tampoco lo hace un hook de reporte
que lance: la excepción queda en hook_errors y la corrida sigue.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple

from epguard.core.contracts import RemoteExecutor
from epguard.core.diff import diff as compute_diff
from epguard.core.errors import TransportError, ValidationError
from epguard.core.models import ApplyOutcome, FailureKind, ServerClassification, ServerSnapshot


ResultHook = Callable[[ServerClassification], None]
PauseHook = Callable[[float], None]

DEFAULT_PAUSE_SECONDS = 5.0


class RemoteApplyCoordinator:
    """
    Orquesta la reconciliación de una flota.

    Args:
        executor: Transporte remoto (ver RemoteExecutor)
        max_workers: Servidores en paralelo (1 = secuencial)
        on_result: Callback de reporte por servidor (presentación)
        pause: Pausa opcional tras reportar un 'partial apply' (p. ej. time.sleep)
        pause_seconds: Duración de la pausa

    Tras reconcile, hook_errors lista (servidor, excepción) de los hooks que fallaron.
    """

    def __init__(
        self,
        executor: RemoteExecutor,
        max_workers: int = 1,
        on_result: Optional[ResultHook] = None,
        pause: Optional[PauseHook] = None,
        pause_seconds: float = DEFAULT_PAUSE_SECONDS,
    ):
        if max_workers < 1:
            raise ValidationError(f"max_workers debe ser >= 1 (recibido: {max_workers})")
        self.executor = executor
        self.max_workers = max_workers
        self.on_result = on_result
        self.pause = pause
        self.pause_seconds = pause_seconds
        self.hook_errors: List[Tuple[str, Exception]] = []
        self._hook_lock = threading.Lock()

    def reconcile(self, snapshots: Sequence[ServerSnapshot]) -> List[ServerClassification]:
        """
        Reconcilia todos los servidores.

        Returns:
            Una clasificación por snapshot, en el mismo orden de entrada
        """
        snapshots = list(snapshots)
        names = [s.server_name for s in snapshots]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValidationError(f"Servidores duplicados en la corrida: {', '.join(duplicates)}")

        self.hook_errors = []

        if self.max_workers == 1 or len(snapshots) <= 1:
            return [self._visit(s) for s in snapshots]

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            return list(pool.map(self._visit, snapshots))

    def _visit(self, snapshot: ServerSnapshot) -> ServerClassification:
        result = self.reconcile_server(snapshot)
        try:
            if self.on_result:
                self.on_result(result)
            if self.pause and result.failure == FailureKind.PARTIAL_APPLY:
                self.pause(self.pause_seconds)
        except Exception as e:
            # La clasificación ya es definitiva; el fallo del hook se reporta aparte
            with self._hook_lock:
                self.hook_errors.append((snapshot.server_name, e))
        return result

    def reconcile_server(self, snapshot: ServerSnapshot) -> ServerClassification:
        """Clasifica un único servidor (sin hooks de reporte)."""
        name = snapshot.server_name

        if not snapshot.reachable:
            return ServerClassification.failed(name, FailureKind.UNREACHABLE, "Servidor inalcanzable durante la recolección")
        if not snapshot.units:
            return ServerClassification.failed(name, FailureKind.NO_DATA, "La recolección no devolvió unidades")

        changes = compute_diff(snapshot.units)
        if not changes:
            return ServerClassification.unchanged(name)

        try:
            outcome = self.executor.dispatch(snapshot.address, changes)
        except TransportError as e:
            return ServerClassification.failed(name, FailureKind.TRANSPORT, e.message, changes=changes)
        except Exception as e:
            # Cualquier error del colaborador cuenta como fallo de transporte del servidor
            return ServerClassification.failed(name, FailureKind.TRANSPORT, f"{type(e).__name__}: {e}", changes=changes)

        return classify_outcome(name, changes, outcome)


def classify_outcome(server_name: str, changes: dict, outcome: ApplyOutcome) -> ServerClassification:
    """Interpreta el ApplyOutcome devuelto por el host."""
    if not outcome.backup_succeeded:
        return ServerClassification.failed(
            server_name,
            FailureKind.BACKUP,
            outcome.backup_error or "No se pudo crear el backup",
            changes=changes,
        )

    if not outcome.all_units_succeeded:
        failed = len(outcome.per_unit_errors)
        return ServerClassification.failed(
            server_name,
            FailureKind.PARTIAL_APPLY,
            f"{failed} de {len(changes)} unidades no se pudieron aplicar",
            unit_errors=outcome.per_unit_errors,
            changes=changes,
            backup_location=outcome.backup_location,
        )

    return ServerClassification.updated(server_name, changes, outcome.backup_location)
