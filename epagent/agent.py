"""
Agente remoto: punto de entrada que se ejecuta en el servidor destino.

    python -m epagent apply --store <applicationHost.config> --diff '{"Default Web Site/OWA": "Allow"}'
    python -m epagent apply --store <applicationHost.config> --diff-b64 <JSON en base64 url-safe>
    python -m epagent read --store <applicationHost.config>
    python -m epagent restore --store <applicationHost.config> --backup <archivo.bak-...>

Escribe JSON en stdout. Sale con código 0 siempre que produjo un resultado
estructurado (aunque el backup o alguna unidad haya fallado).
"""

import base64
import binascii
import json
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

import typer

from epguard.core.errors import BackupError
from .apply import backup_and_apply, restore_backup
from .store import AppHostConfigStore

app = typer.Typer(
    name="epagent",
    help="Agente EPGuard: aplica Extended Protection en el host local",
    add_completion=False,
    no_args_is_help=True
)


@app.command()
def apply(
    store: Path = typer.Option(..., "--store", help="Ruta de applicationHost.config"),
    diff: Optional[str] = typer.Option(None, "--diff", help="JSON {unidad: valor}"),
    diff_b64: Optional[str] = typer.Option(None, "--diff-b64", help="El mismo JSON en base64 url-safe (lo usa el transporte SSH)"),
):
    """Respalda el store y aplica el diff; imprime el ApplyOutcome"""
    if (diff is None) == (diff_b64 is None):
        typer.echo("Indica exactamente uno de --diff o --diff-b64", err=True)
        raise typer.Exit(code=2)
    if diff_b64 is not None:
        try:
            diff = base64.urlsafe_b64decode(diff_b64.encode("ascii")).decode("utf-8")
        except (binascii.Error, ValueError) as e:
            typer.echo(f"--diff-b64 no es base64 válido: {e}", err=True)
            raise typer.Exit(code=2)

    try:
        changes = json.loads(diff)
    except json.JSONDecodeError as e:
        typer.echo(f"El diff no es JSON válido: {e}", err=True)
        raise typer.Exit(code=2)
    if not isinstance(changes, dict):
        typer.echo("El diff debe ser un objeto JSON", err=True)
        raise typer.Exit(code=2)

    outcome = backup_and_apply(AppHostConfigStore(store), {str(k): str(v) for k, v in changes.items()})
    typer.echo(outcome.model_dump_json())


@app.command()
def read(
    store: Path = typer.Option(..., "--store", help="Ruta de applicationHost.config"),
):
    """Imprime el tokenChecking actual de cada unidad"""
    try:
        units = AppHostConfigStore(store).read_units()
    except (OSError, ET.ParseError) as e:
        typer.echo(json.dumps({"units": {}, "error": str(e)}))
        return
    typer.echo(json.dumps({"units": units}))


@app.command()
def restore(
    store: Path = typer.Option(..., "--store", help="Ruta de applicationHost.config"),
    backup: Path = typer.Option(..., "--backup", help="Backup a restaurar"),
):
    """Restaura un backup sobre el store (respaldando antes el estado actual)"""
    try:
        previous = restore_backup(AppHostConfigStore(store), backup)
    except BackupError as e:
        typer.echo(json.dumps({"restored": None, "error": str(e)}))
        raise typer.Exit(code=1)
    typer.echo(json.dumps({"restored": str(backup), "previous": str(previous)}))


def main():
    app()
