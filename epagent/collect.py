"""
Recolección de snapshots: estado actual de cada servidor + valor esperado.
"""

from typing import Dict, List, Optional, Protocol

from rich.console import Console

from epguard.core.errors import TransportError
from epguard.core.models import ConfigUnit, ServerSnapshot
from .inventory import Inventory, PolicyConfig, ServerEntry


class SnapshotSource(Protocol):
    """Quien sabe leer el tokenChecking actual de un host (SSHExecutor, LocalExecutor)."""
    def collect(self, host: str) -> Dict[str, Optional[str]]:
        ...


def build_units(current: Dict[str, Optional[str]], policy: PolicyConfig) -> List[ConfigUnit]:
    """Cruza los valores actuales con la política (respeta la lista blanca)."""
    return [
        ConfigUnit(name=name, current_value=value, expected_value=policy.expected_for(name))
        for name, value in current.items()
        if policy.manages(name)
    ]


def offline_snapshot(entry: ServerEntry, policy: PolicyConfig) -> ServerSnapshot:
    """Snapshot declarado en el inventario (sin conexión al host)."""
    units = [
        ConfigUnit(
            name=u.name,
            current_value=u.current,
            expected_value=u.expected.value if u.expected else policy.expected_for(u.name),
        )
        for u in entry.units or []
        if policy.manages(u.name)
    ]
    return ServerSnapshot(
        server_name=entry.name,
        host=entry.host,
        reachable=entry.reachable,
        units=units if entry.reachable else [],
    )


def collect_snapshot(entry: ServerEntry, source: SnapshotSource, policy: PolicyConfig) -> ServerSnapshot:
    """
    Recolecta el snapshot de un servidor.

    Un fallo de transporte produce reachable=False; un store sin unidades
    produce units vacío. Ninguno de los dos lanza excepción.
    """
    if entry.is_offline or not entry.reachable:
        return offline_snapshot(entry, policy)

    try:
        current = source.collect(entry.address)
    except TransportError:
        return ServerSnapshot(server_name=entry.name, host=entry.host, reachable=False)

    return ServerSnapshot(
        server_name=entry.name,
        host=entry.host,
        reachable=True,
        units=build_units(current, policy),
    )


def collect_fleet(
    inventory: Inventory,
    source: SnapshotSource,
    console: Optional[Console] = None
) -> List[ServerSnapshot]:
    """Recolecta todos los servidores del inventario, en orden"""
    snapshots = []
    for entry in inventory.servers:
        snapshot = collect_snapshot(entry, source, inventory.policy)
        if console:
            if not snapshot.reachable:
                console.print(f"  [red]✘[/red] {entry.name}: [dim]inalcanzable[/dim]")
            else:
                console.print(f"  [dim]•[/dim] {entry.name}: {len(snapshot.units)} unidades")
        snapshots.append(snapshot)
    return snapshots
