"""
Módulo SSH - Ejecución remota del agente EPGuard
"""

import base64
import json
import re
import shlex
import subprocess
from pathlib import Path
from typing import Dict, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from epguard.core.errors import TransportError
from epguard.core.models import ApplyOutcome
from .settings import Settings

# cmd.exe (shell por defecto de OpenSSH en Windows) y sh interpretan estos
# caracteres aun entre comillas dobles
_UNQUOTABLE = re.compile(r'["$%`!\r\n]')


def quote_arg(arg: str) -> str:
    """
    Cita un argumento para que cmd.exe y sh lo entreguen igual.

    Raises:
        ValueError: el argumento contiene caracteres sin cita común
    """
    if _UNQUOTABLE.search(arg) or arg.endswith("\\"):
        raise ValueError(f"Argumento no citable para el shell remoto: {arg!r}")
    if shlex.quote(arg) == arg:
        return arg
    return f'"{arg}"'


def encode_diff(diff: Dict[str, str]) -> str:
    """JSON del diff en base64 url-safe: no necesita comillas en ningún shell."""
    return base64.urlsafe_b64encode(json.dumps(diff).encode("utf-8")).decode("ascii")


def ssh_execute(
    host: str,
    user: str,
    command: str,
    password: Optional[str] = None,
    key_path: Optional[Path] = None,
    timeout: int = 30
) -> Tuple[bool, str, str]:
    """
    Ejecuta un comando remoto vía SSH

    Args:
        host: Hostname o IP del servidor
        user: Usuario SSH
        command: Comando a ejecutar
        password: Contraseña SSH (opcional, requiere sshpass)
        key_path: Ruta a clave SSH privada
        timeout: Timeout en segundos

    Returns:
        Tuple (success, stdout, stderr)
    """
    ssh_cmd = ["ssh"]

    # Opciones SSH
    ssh_options = [
        "-o", "StrictHostKeyChecking=no",
        "-o", "UserKnownHostsFile=/dev/null",
        "-o", "ConnectTimeout=10",
        "-o", "BatchMode=yes" if not password else "BatchMode=no"
    ]

    if key_path and key_path.exists():
        ssh_options.extend(["-i", str(key_path)])

    ssh_target = f"{user}@{host}"
    full_cmd = ssh_cmd + ssh_options + [ssh_target, command]

    # Si hay contraseña, usar sshpass
    if password:
        full_cmd = ["sshpass", "-p", password] + full_cmd

    try:
        result = subprocess.run(
            full_cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False
        )

        return result.returncode == 0, result.stdout, result.stderr
    except subprocess.TimeoutExpired:
        return False, "", f"Timeout ({timeout}s) al ejecutar comando SSH"
    except FileNotFoundError:
        return False, "", "Comando ssh no encontrado. Instala openssh-client"
    except Exception as e:
        return False, "", f"Error SSH: {str(e)}"


class SSHExecutor:
    """Transporte SSH: ejecuta 'python -m epagent' en cada host"""

    def __init__(self, settings: Settings):
        self.settings = settings

    def _agent_command(self, host: str, *args: str) -> str:
        argv = [self.settings.remote_python, "-m", "epagent", *args]
        try:
            return " ".join(quote_arg(a) for a in argv)
        except ValueError as e:
            raise TransportError(host, str(e)) from e

    def _run(self, host: str, command: str) -> str:
        success, stdout, stderr = ssh_execute(
            host=host,
            user=self.settings.ssh_user,
            command=command,
            password=self.settings.ssh_password,
            key_path=self.settings.ssh_key,
            timeout=self.settings.ssh_timeout,
        )
        if not success:
            raise TransportError(host, (stderr or stdout).strip() or "El agente remoto terminó con error")
        return stdout

    def dispatch(self, host: str, diff: Dict[str, str]) -> ApplyOutcome:
        """Ejecuta BackupAndApply en el host y devuelve su ApplyOutcome"""
        command = self._agent_command(host, "apply", "--store", self.settings.store_path, "--diff-b64", encode_diff(diff))
        stdout = self._run(host, command)
        try:
            return ApplyOutcome.model_validate_json(stdout.strip())
        except PydanticValidationError as e:
            raise TransportError(host, f"Respuesta inválida del agente: {e.errors()[0]['msg']}") from e

    def collect(self, host: str) -> Dict[str, Optional[str]]:
        """Lee el tokenChecking actual de cada unidad del host"""
        stdout = self._run(host, self._agent_command(host, "read", "--store", self.settings.store_path))
        try:
            payload = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise TransportError(host, f"Respuesta inválida del agente: {e}") from e
        units = payload.get("units") if isinstance(payload, dict) else None
        if not isinstance(units, dict):
            raise TransportError(host, "Respuesta del agente sin 'units'")
        return units

    def restore(self, host: str, backup: str) -> Dict[str, Optional[str]]:
        """Restaura un backup en el host; devuelve {'restored', 'previous'}"""
        stdout = self._run(host, self._agent_command(host, "restore", "--store", self.settings.store_path, "--backup", backup))
        try:
            return json.loads(stdout)
        except json.JSONDecodeError as e:
            raise TransportError(host, f"Respuesta inválida del agente: {e}") from e
