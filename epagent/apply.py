"""
BackupAndApply: unidad de trabajo que se ejecuta EN el servidor destino.

Orden estricto: primero backup, después escritura por unidad. Si el backup
falla no se toca ninguna unidad. Un error en una unidad no detiene el resto
(la aplicación parcial se reporta, no se oculta ni se revierte).
"""

import shutil
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from epguard.core.contracts import ConfigStore
from epguard.core.errors import BackupError, UnitApplyError
from epguard.core.models import ApplyOutcome, UnitError


MAX_BACKUP_ATTEMPTS = 100


def backup_candidates(config_file: Path, now: datetime) -> Iterator[Path]:
    """
    Nombres de backup junto al archivo, en orden de preferencia:

        <archivo>.bak-YYYYmmdd-HHMMSS
        <archivo>.bak-YYYYmmdd-HHMMSS-ffffff
        <archivo>.bak-YYYYmmdd-HHMMSS-ffffff-N
    """
    base = f"{config_file.name}.bak-{now.strftime('%Y%m%d-%H%M%S')}"
    yield config_file.parent / base
    yield config_file.parent / f"{base}-{now.strftime('%f')}"
    for n in range(1, MAX_BACKUP_ATTEMPTS):
        yield config_file.parent / f"{base}-{now.strftime('%f')}-{n}"


def backup_path_for(config_file: Path, now: Optional[datetime] = None) -> Path:
    """Primer nombre de backup libre (informativo; create_backup lo reserva de forma exclusiva)."""
    for candidate in backup_candidates(config_file, now or datetime.now()):
        if not candidate.exists():
            return candidate
    raise BackupError(f"No hay nombre de backup libre para {config_file}")


def create_backup(config_file: Path, now: Optional[datetime] = None) -> Path:
    """
    Copia el archivo autoritativo a un backup nuevo; lanza BackupError si falla.

    El destino se crea con O_EXCL ('xb'): dos backups simultáneos nunca
    comparten archivo.
    """
    if not config_file.is_file():
        raise BackupError(f"No existe el archivo de configuración: {config_file}")

    for candidate in backup_candidates(config_file, now or datetime.now()):
        try:
            dst = open(candidate, "xb")
        except FileExistsError:
            continue
        except OSError as e:
            raise BackupError(f"No se pudo respaldar {config_file} en {candidate}: {e}") from e

        try:
            with dst, open(config_file, "rb") as src:
                shutil.copyfileobj(src, dst)
            shutil.copystat(config_file, candidate)
        except OSError as e:
            candidate.unlink(missing_ok=True)
            raise BackupError(f"No se pudo respaldar {config_file} en {candidate}: {e}") from e
        return candidate

    raise BackupError(f"No hay nombre de backup libre para {config_file}")


def backup_and_apply(
    store: ConfigStore,
    diff: Dict[str, str],
    now: Optional[datetime] = None,
) -> ApplyOutcome:
    """
    Respalda el store y aplica el diff unidad por unidad.

    Args:
        store: Store autoritativo del host
        diff: {unidad: nuevo_valor}
        now: Instante para el nombre del backup (por defecto datetime.now())

    Returns:
        ApplyOutcome con el detalle de lo que realmente ocurrió
    """
    try:
        backup = create_backup(store.path, now)
    except BackupError as e:
        return ApplyOutcome(backup_succeeded=False, backup_error=str(e))

    errors: List[UnitError] = []
    applied: List[str] = []
    for unit_name, value in diff.items():
        try:
            store.set_unit(unit_name, value)
        except UnitApplyError as e:
            errors.append(UnitError(unit_name=unit_name, error_detail=e.message))
            continue
        except OSError as e:
            errors.append(UnitError(unit_name=unit_name, error_detail=f"{type(e).__name__}: {e.strerror or e}"))
            continue
        applied.append(unit_name)

    return ApplyOutcome(
        backup_succeeded=True,
        backup_location=str(backup),
        per_unit_errors=errors,
        applied_units=applied,
    )


def restore_backup(store: ConfigStore, backup_location: Path) -> Path:
    """
    Restaura un backup sobre el archivo autoritativo.

    Antes de sobrescribir, respalda el estado actual para poder deshacer
    la restauración.

    Returns:
        Ruta del backup del estado previo a la restauración
    """
    backup_location = Path(backup_location)
    if not backup_location.is_file():
        raise BackupError(f"No existe el backup: {backup_location}")

    previous = create_backup(store.path)
    try:
        shutil.copy2(backup_location, store.path)
    except OSError as e:
        raise BackupError(f"No se pudo restaurar {backup_location} sobre {store.path}: {e}") from e
    return previous
