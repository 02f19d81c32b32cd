"""
Configuración de EPGuard.

Precedencia (de menor a mayor):
  1. Valores por defecto del modelo
  2. Sección 'settings:' del inventario YAML
  3. Variables de entorno EPGUARD_* (incluye las cargadas desde .env)
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, ValidationError as PydanticValidationError

from epguard.core.errors import ConfigError


DEFAULT_STORE_PATH = "C:/Windows/System32/inetsrv/config/applicationHost.config"
ENV_PREFIX = "EPGUARD_"


class Settings(BaseModel):
    """Parámetros de transporte y ejecución"""
    ssh_user: str = Field("administrator", description="Usuario SSH en los servidores")
    ssh_key: Optional[Path] = Field(None, description="Clave privada SSH")
    ssh_password: Optional[str] = Field(None, description="Contraseña SSH (requiere sshpass)")
    ssh_timeout: int = Field(120, ge=1, description="Timeout por llamada remota en segundos")
    remote_python: str = Field("python3", description="Intérprete con epagent instalado en el host")
    store_path: str = Field(DEFAULT_STORE_PATH, description="applicationHost.config en el host")
    workers: int = Field(1, ge=1, description="Servidores reconciliados en paralelo")
    pause_seconds: float = Field(5.0, ge=0, description="Pausa tras un 'partial apply' en modo interactivo")

    @field_validator("ssh_key")
    @classmethod
    def _expand_key(cls, value: Optional[Path]) -> Optional[Path]:
        return value.expanduser() if value else value


def load_dotenv_file(env_file: Optional[Path] = None) -> None:
    """Carga .env (del cwd o el indicado) sin pisar variables ya definidas."""
    env_file = env_file or Path.cwd() / ".env"
    if env_file.exists():
        load_dotenv(env_file)


def _from_env() -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for name in Settings.model_fields:
        raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}", "").strip()
        if raw:
            values[name] = raw
    return values


def load_settings(overrides: Optional[Dict[str, Any]] = None, env_file: Optional[Path] = None) -> Settings:
    """
    Construye Settings combinando inventario y entorno.

    Args:
        overrides: Sección 'settings:' del inventario
        env_file: .env explícito

    Returns:
        Settings validados
    """
    load_dotenv_file(env_file)
    data: Dict[str, Any] = dict(overrides or {})
    data.update(_from_env())
    try:
        return Settings(**data)
    except PydanticValidationError as e:
        raise ConfigError(f"Configuración inválida: {e}") from e
