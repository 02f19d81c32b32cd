"""
Modelos de datos del Control Plane (agnósticos de transporte y filesystem).

Todo lo que cruza el transporte remoto (snapshots, ApplyOutcome) es un
modelo Pydantic y se serializa como JSON.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class TokenChecking(str, Enum):
    """Valores válidos de extendedProtection/@tokenChecking"""
    NONE = "None"
    ALLOW = "Allow"
    REQUIRE = "Require"


class Classification(str, Enum):
    """Estado terminal de un servidor en una corrida"""
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    FAILED = "failed"


class FailureKind(str, Enum):
    """Motivo de un servidor clasificado como FAILED"""
    UNREACHABLE = "unreachable"
    NO_DATA = "no data"
    TRANSPORT = "transport failure"
    BACKUP = "backup failed, no changes applied"
    PARTIAL_APPLY = "partial apply"


class ConfigUnit(BaseModel):
    """Unidad configurable (virtual directory) con su valor actual y esperado."""
    name: str = Field(..., description="Ruta del <location> (ej: Default Web Site/OWA)")
    current_value: Optional[str] = Field(None, description="Valor aplicado; None si no está definido")
    expected_value: str = Field(..., description="Valor objetivo según la política")


class ServerSnapshot(BaseModel):
    """Estado recolectado de un servidor antes de reconciliar."""
    server_name: str = Field(..., description="Identidad del servidor, única por corrida")
    reachable: bool = True
    units: List[ConfigUnit] = Field(default_factory=list)
    host: Optional[str] = Field(None, description="Dirección de red; por defecto server_name")

    @property
    def address(self) -> str:
        return self.host or self.server_name


class UnitError(BaseModel):
    """Error al aplicar una unidad concreta."""
    unit_name: str
    error_detail: str


class ApplyOutcome(BaseModel):
    """
    Resultado de BackupAndApply en un servidor.

    Si el backup falla no se intenta ninguna escritura: per_unit_errors y
    applied_units quedan vacíos.
    """
    backup_succeeded: bool
    backup_location: str = ""
    backup_error: Optional[str] = None
    per_unit_errors: List[UnitError] = Field(default_factory=list)
    applied_units: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _backup_gate(self) -> "ApplyOutcome":
        if not self.backup_succeeded and (self.per_unit_errors or self.applied_units):
            raise ValueError("Sin backup no puede haber unidades aplicadas ni errores por unidad")
        return self

    @property
    def all_units_succeeded(self) -> bool:
        return not self.per_unit_errors


class ServerClassification(BaseModel):
    """Clasificación final de un servidor (exactamente una por corrida)."""
    server_name: str
    status: Classification
    failure: Optional[FailureKind] = None
    detail: Optional[str] = None
    unit_errors: List[UnitError] = Field(default_factory=list)
    changes: Dict[str, str] = Field(default_factory=dict, description="Diff despachado al servidor")
    backup_location: Optional[str] = None

    @model_validator(mode="after")
    def _failure_matches_status(self) -> "ServerClassification":
        if (self.status == Classification.FAILED) != (self.failure is not None):
            raise ValueError("failure debe definirse si y solo si status es FAILED")
        if self.unit_errors and self.failure != FailureKind.PARTIAL_APPLY:
            raise ValueError("unit_errors solo aplica a 'partial apply'")
        return self

    @property
    def reason(self) -> Optional[str]:
        """Motivo legible del fallo ('unreachable', 'partial apply', ...)."""
        return self.failure.value if self.failure else None

    @classmethod
    def updated(cls, server_name: str, changes: Dict[str, str], backup_location: str = "") -> "ServerClassification":
        return cls(
            server_name=server_name,
            status=Classification.UPDATED,
            changes=changes,
            backup_location=backup_location or None,
        )

    @classmethod
    def unchanged(cls, server_name: str) -> "ServerClassification":
        return cls(server_name=server_name, status=Classification.UNCHANGED)

    @classmethod
    def failed(
        cls,
        server_name: str,
        failure: FailureKind,
        detail: Optional[str] = None,
        unit_errors: Optional[List[UnitError]] = None,
        changes: Optional[Dict[str, str]] = None,
        backup_location: Optional[str] = None,
    ) -> "ServerClassification":
        return cls(
            server_name=server_name,
            status=Classification.FAILED,
            failure=failure,
            detail=detail,
            unit_errors=unit_errors or [],
            changes=changes or {},
            backup_location=backup_location or None,
        )
