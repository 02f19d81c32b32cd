"""
Aplicación CLI de EPGuard.

Solo compone: inventario + settings + transporte + core + presentación.
La lógica vive en epguard.core y epagent.

Códigos de salida:
  0 = reconciliación completada sin servidores fallidos
  2 = algún servidor quedó en FAILED
  3 = error de configuración (inventario, settings)
"""

import sys
import time
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.markup import escape
from rich.prompt import Confirm

from epguard import __version__
from epguard.core.aggregate import aggregate
from epguard.core.errors import ConfigError, TransportError
from epguard.core.reconcile import RemoteApplyCoordinator
from epagent.collect import collect_fleet
from epagent.doctor import run_doctor
from epagent.inventory import Inventory, load_inventory
from epagent.local import LocalExecutor
from epagent.settings import Settings, load_settings
from epagent.ssh import SSHExecutor
from .report import print_result, show_plan, show_report

EXIT_FAILURES = 2
EXIT_CONFIG = 3

app = typer.Typer(
    name="epguard",
    help="EPGuard - Reconciliación de Extended Protection (tokenChecking) en la flota",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def _load(inventory_path: Path, env_file: Optional[Path]) -> tuple[Inventory, Settings]:
    try:
        inventory = load_inventory(inventory_path)
        settings = load_settings(inventory.settings, env_file)
    except ConfigError as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        raise typer.Exit(code=EXIT_CONFIG)
    return inventory, settings


def _executor(settings: Settings, local_store: Optional[Path]):
    if local_store:
        return LocalExecutor(local_store)
    return SSHExecutor(settings)


@app.command()
def plan(
    inventory_path: Path = typer.Argument(..., help="Inventario YAML de la flota"),
    local_store: Optional[Path] = typer.Option(None, "--local", help="Usar un applicationHost.config local en vez de SSH"),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Archivo .env con EPGUARD_*"),
):
    """
    Muestra los cambios que aplicaría reconcile (no modifica nada)

    Ejemplos:
        epguard plan fleet.yaml
        epguard plan fleet.yaml --local ./applicationHost.config
    """
    inventory, settings = _load(inventory_path, env_file)
    console.print(Panel.fit(
        "[bold cyan]Plan de Extended Protection[/bold cyan]\n"
        f"[dim]Inventario:[/dim] {inventory_path}\n"
        f"[dim]Servidores:[/dim] {len(inventory.servers)}",
        border_style="cyan"
    ))
    snapshots = collect_fleet(inventory, _executor(settings, local_store), console)
    pending = show_plan(snapshots, console)
    console.print(f"\n[dim]{pending} servidor(es) con cambios pendientes[/dim]")


@app.command()
def reconcile(
    inventory_path: Path = typer.Argument(..., help="Inventario YAML de la flota"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Servidores en paralelo"),
    yes: bool = typer.Option(False, "--yes", "-y", help="No pedir confirmación"),
    no_pause: bool = typer.Option(False, "--no-pause", help="No pausar tras un 'partial apply'"),
    local_store: Optional[Path] = typer.Option(None, "--local", help="Usar un applicationHost.config local en vez de SSH"),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Archivo .env con EPGUARD_*"),
):
    """
    Reconcilia tokenChecking en todos los servidores del inventario

    Respalda applicationHost.config antes de escribir y clasifica cada
    servidor como actualizado, sin cambios o fallido.
    """
    inventory, settings = _load(inventory_path, env_file)
    executor = _executor(settings, local_store)

    console.print(Panel.fit(
        "[bold cyan]Reconciliación de Extended Protection[/bold cyan]\n"
        f"[dim]Inventario:[/dim] {inventory_path}\n"
        f"[dim]Transporte:[/dim] {'local ' + str(local_store) if local_store else 'ssh ' + settings.ssh_user}",
        border_style="cyan"
    ))

    console.print("\n[bold]Recolección[/bold]")
    snapshots = collect_fleet(inventory, executor, console)

    console.print()
    pending = show_plan(snapshots, console)
    if pending and not yes:
        if not Confirm.ask("[bold yellow]¿Aplicar estos cambios?[/bold yellow]", default=False):
            console.print("[yellow]Operación cancelada[/yellow]")
            return

    interactive = sys.stdin.isatty() and not no_pause
    coordinator = RemoteApplyCoordinator(
        executor,
        max_workers=workers or settings.workers,
        on_result=lambda result: print_result(result, console),
        pause=time.sleep if interactive else None,
        pause_seconds=settings.pause_seconds,
    )

    console.print("\n[bold]Aplicación[/bold]")
    report = aggregate(coordinator.reconcile(snapshots))
    for server_name, error in coordinator.hook_errors:
        console.print(f"[yellow]⚠ Reporte de {server_name} incompleto: {escape(str(error))}[/yellow]")

    console.print()
    show_report(report, console)
    if not report.ok:
        raise typer.Exit(code=EXIT_FAILURES)


@app.command()
def restore(
    host: str = typer.Argument(..., help="Servidor a restaurar"),
    backup: str = typer.Argument(..., help="Ruta del backup en el servidor"),
    local_store: Optional[Path] = typer.Option(None, "--local", help="Usar un applicationHost.config local en vez de SSH"),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Archivo .env con EPGUARD_*"),
):
    """
    Restaura applicationHost.config desde un backup creado por reconcile

    El estado actual se respalda antes de sobrescribir.
    """
    try:
        settings = load_settings(env_file=env_file)
    except ConfigError as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        raise typer.Exit(code=EXIT_CONFIG)

    if not Confirm.ask(f"[bold yellow]¿Restaurar {backup} en {host}?[/bold yellow]", default=False):
        console.print("[yellow]Operación cancelada[/yellow]")
        return

    try:
        result = _executor(settings, local_store).restore(host, backup)
    except TransportError as e:
        console.print(f"[red]❌ No se pudo restaurar: {e.message}[/red]")
        raise typer.Exit(code=EXIT_FAILURES)

    console.print(f"[green]✅ Restaurado {result.get('restored')} en {host}[/green]")
    console.print(f"[dim]Estado previo respaldado en: {result.get('previous')}[/dim]")


@app.command()
def doctor(
    inventory_path: Optional[Path] = typer.Argument(None, help="Inventario YAML (para probar conectividad)"),
):
    """Verifica herramientas (ssh, sshpass) y conectividad a los hosts"""
    hosts = None
    tools = ["ssh"]
    if inventory_path:
        inventory, settings = _load(inventory_path, None)
        hosts = [s.address for s in inventory.servers if not s.is_offline]
        if settings.ssh_password:
            tools.append("sshpass")
    results = run_doctor(console, required_tools=tools, hosts=hosts)
    if not all(v for k, v in results.items() if k.startswith("tool_")):
        raise typer.Exit(code=1)


@app.command()
def version():
    """Muestra la versión de EPGuard"""
    console.print(Panel.fit(
        "[bold cyan]EPGuard[/bold cyan]\n"
        "[dim]Reconciliación de Extended Protection en la flota[/dim]\n\n"
        f"[bold]Versión:[/bold] {__version__}",
        border_style="cyan"
    ))


def main():
    app()
