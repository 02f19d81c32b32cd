"""
Presentación Rich de snapshots, clasificaciones y reporte agregado.

El core no imprime nada; todo el formato vive aquí.
"""

from typing import List

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from epguard.core.aggregate import FleetReport
from epguard.core.diff import diff as compute_diff
from epguard.core.models import Classification, FailureKind, ServerClassification, ServerSnapshot


def show_plan(snapshots: List[ServerSnapshot], console: Console) -> int:
    """
    Muestra los cambios pendientes por servidor.

    Returns:
        Número de servidores con cambios pendientes
    """
    table = Table(title="Cambios Propuestos", show_header=True, header_style="bold cyan", box=box.SIMPLE)
    table.add_column("Servidor", style="cyan")
    table.add_column("Unidad", style="white")
    table.add_column("Actual", style="red")
    table.add_column("Esperado", style="green")

    pending = 0
    for snapshot in snapshots:
        if not snapshot.reachable:
            table.add_row(snapshot.server_name, "[dim]—[/dim]", "[red]inalcanzable[/red]", "")
            continue
        if not snapshot.units:
            table.add_row(snapshot.server_name, "[dim]—[/dim]", "[yellow]sin datos[/yellow]", "")
            continue
        changes = compute_diff(snapshot.units)
        if not changes:
            table.add_row(snapshot.server_name, "[dim](sin cambios)[/dim]", "", "")
            continue
        pending += 1
        current = {u.name: u.current_value for u in snapshot.units}
        for unit_name, value in changes.items():
            table.add_row(snapshot.server_name, unit_name, str(current[unit_name]), value)

    console.print(table)
    return pending


def print_result(result: ServerClassification, console: Console) -> None:
    """Línea de progreso por servidor (callback on_result del coordinador)"""
    name = result.server_name
    if result.status == Classification.UPDATED:
        console.print(f"  [green]✔[/green] {name}: {len(result.changes)} unidades actualizadas")
        if result.backup_location:
            console.print(f"    [dim]Backup: {result.backup_location}[/dim]")
    elif result.status == Classification.UNCHANGED:
        console.print(f"  [dim]•[/dim] {name}: sin cambios")
    elif result.failure == FailureKind.PARTIAL_APPLY:
        console.print(f"  [red]✘[/red] {name}: [bold red]{result.reason}[/bold red] - {escape(result.detail or '')}")
        console.print("    [yellow]⚠ El store quedó parcialmente modificado; revisa los errores abajo[/yellow]")
        if result.backup_location:
            console.print(f"    [dim]Backup: {result.backup_location}[/dim]")
    else:
        console.print(f"  [red]✘[/red] {name}: {result.reason} [dim]{escape(result.detail or '')}[/dim]")


def show_report(report: FleetReport, console: Console) -> None:
    """Resumen final: conjuntos y errores agrupados"""
    summary = Table(title="Resumen", show_header=True, header_style="bold cyan")
    summary.add_column("Estado", style="cyan")
    summary.add_column("Servidores", justify="right")
    summary.add_column("Nombres", style="dim")
    summary.add_row("[green]Actualizados[/green]", str(len(report.updated)), ", ".join(sorted(report.updated)))
    summary.add_row("Sin cambios", str(len(report.unchanged)), ", ".join(sorted(report.unchanged)))
    summary.add_row("[red]Fallidos[/red]", str(len(report.failed)), ", ".join(sorted(report.failed)))
    console.print(summary)

    if report.failures:
        failures = Table(title="Fallos", show_header=True, header_style="bold red", box=box.SIMPLE)
        failures.add_column("Servidor", style="cyan")
        failures.add_column("Motivo", style="red")
        failures.add_column("Detalle", style="dim")
        for name in sorted(report.failures):
            result = report.failures[name]
            failures.add_row(name, result.reason or "", escape(result.detail or ""))
        console.print(failures)

    for name in sorted(report.error_groups):
        table = Table(title=f"Errores por unidad - {name}", show_header=True, header_style="bold yellow", box=box.SIMPLE)
        table.add_column("Error", style="white")
        table.add_column("Unidades", justify="right")
        table.add_column("Ejemplo", style="dim")
        for group in report.error_groups[name]:
            table.add_row(escape(group.error_detail), str(group.count), group.sample.unit_name)
        console.print(table)

    if report.ok:
        console.print(Panel.fit("[bold green]✅ Reconciliación completada sin fallos[/bold green]", border_style="green"))
    else:
        console.print(Panel.fit(
            f"[bold yellow]⚠️ Reconciliación completada con {len(report.failed)} servidor(es) fallido(s)[/bold yellow]",
            border_style="yellow"
        ))
