"""
Módulo Doctor - Verificación de herramientas y conectividad antes de reconciliar
"""

import socket
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from rich.console import Console
from rich.panel import Panel
from rich.table import Table


DEFAULT_TOOLS = ["ssh"]


def check_tool(tool_name: str) -> Tuple[bool, Optional[str]]:
    """
    Verifica si una herramienta está instalada y disponible

    Returns:
        Tuple (is_available, version_info)
    """
    try:
        result = subprocess.run(
            ["which", tool_name],
            capture_output=True,
            text=True,
            check=False,
            timeout=2
        )
    except (OSError, subprocess.TimeoutExpired):
        return False, None

    if result.returncode != 0:
        return False, None

    # ssh -V escribe la versión en stderr
    version_info = None
    try:
        version_result = subprocess.run(
            [tool_name, "-V"],
            capture_output=True,
            text=True,
            timeout=2,
            check=False
        )
        output = (version_result.stdout or version_result.stderr).strip()
        if output:
            version_info = output.split("\n")[0][:50]
    except (OSError, subprocess.TimeoutExpired):
        pass

    return True, version_info


def has_ssh_keys() -> bool:
    """Verifica si existen claves SSH privadas en ~/.ssh"""
    ssh_dir = Path.home() / ".ssh"
    if not ssh_dir.exists():
        return False
    return any(not f.name.endswith(".pub") for f in ssh_dir.glob("id_*"))


def check_connectivity(host: str, port: int = 22, timeout: int = 3) -> bool:
    """Verifica conectividad TCP básica a un host"""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def run_doctor(
    console: Console,
    required_tools: Optional[List[str]] = None,
    hosts: Optional[List[str]] = None
) -> Dict[str, bool]:
    """
    Ejecuta la verificación completa (doctor)

    Args:
        console: Console de Rich para salida
        required_tools: Herramientas requeridas (por defecto: ssh)
        hosts: Hosts del inventario a probar en el puerto 22

    Returns:
        Dict con resultados de verificación
    """
    required_tools = required_tools or DEFAULT_TOOLS

    console.print(Panel.fit("[bold cyan]Doctor - Verificación del Sistema[/bold cyan]", border_style="cyan"))

    results: Dict[str, bool] = {}

    console.print("\n[bold]Herramientas[/bold]")
    tool_table = Table(show_header=True, header_style="bold cyan")
    tool_table.add_column("Herramienta", style="cyan")
    tool_table.add_column("Estado", style="green")
    tool_table.add_column("Versión", style="dim")

    for tool in required_tools:
        available, version = check_tool(tool)
        status = "[green]✔ Disponible[/green]" if available else "[red]✘ No encontrado[/red]"
        tool_table.add_row(tool, status, version or "[dim]N/A[/dim]")
        results[f"tool_{tool}"] = available

    console.print(tool_table)

    results["ssh_keys"] = has_ssh_keys()
    if not results["ssh_keys"]:
        console.print("[yellow]⚠ No hay claves SSH en ~/.ssh (se requerirá ssh_key o ssh_password)[/yellow]")

    if hosts:
        console.print("\n[bold]Conectividad (puerto 22)[/bold]")
        host_table = Table(show_header=True, header_style="bold cyan")
        host_table.add_column("Host", style="cyan")
        host_table.add_column("Estado", style="green")
        for host in hosts:
            reachable = check_connectivity(host)
            host_table.add_row(host, "[green]✔ Accesible[/green]" if reachable else "[red]✘ Sin respuesta[/red]")
            results[f"host_{host}"] = reachable
        console.print(host_table)

    missing = [tool for tool in required_tools if not results.get(f"tool_{tool}", False)]
    if missing:
        console.print("\n[yellow]⚠️ Algunas herramientas faltan[/yellow]")
        console.print(f"[dim]Faltan: {', '.join(missing)}[/dim]")
    else:
        console.print("\n[bold green]✅ Todas las herramientas requeridas están disponibles[/bold green]")

    return results
