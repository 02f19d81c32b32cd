"""
OutcomeAggregator: reduce las clasificaciones a tres conjuntos disjuntos
(updated / unchanged / failed) y agrupa los errores por unidad.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set

from epguard.core.errors import ValidationError
from epguard.core.models import Classification, FailureKind, ServerClassification, UnitError


@dataclass
class ErrorGroup:
    """Errores idénticos de un servidor: un único renglón para el operador."""
    error_detail: str
    count: int
    units: List[str]
    sample: UnitError


@dataclass
class FleetReport:
    """Resultado agregado de una corrida"""
    updated: Set[str] = field(default_factory=set)
    unchanged: Set[str] = field(default_factory=set)
    failed: Set[str] = field(default_factory=set)
    failures: Dict[str, ServerClassification] = field(default_factory=dict)
    error_groups: Dict[str, List[ErrorGroup]] = field(default_factory=dict)

    @property
    def servers(self) -> Set[str]:
        return self.updated | self.unchanged | self.failed

    @property
    def ok(self) -> bool:
        """True si ningún servidor quedó en FAILED"""
        return not self.failed

    def merge(self, other: "FleetReport") -> "FleetReport":
        """Combina dos reportes de servidores distintos en uno nuevo."""
        overlap = self.servers & other.servers
        if overlap:
            raise ValidationError(f"Servidores presentes en ambos reportes: {', '.join(sorted(overlap))}")
        return FleetReport(
            updated=self.updated | other.updated,
            unchanged=self.unchanged | other.unchanged,
            failed=self.failed | other.failed,
            failures={**self.failures, **other.failures},
            error_groups={**self.error_groups, **other.error_groups},
        )


def group_unit_errors(errors: Iterable[UnitError]) -> List[ErrorGroup]:
    """
    Agrupa errores por detalle idéntico, en orden de primera aparición.

    Evita N líneas iguales cuando una misma causa (p. ej. acceso denegado)
    afecta a muchas unidades a la vez.
    """
    groups: Dict[str, ErrorGroup] = {}
    for error in errors:
        group = groups.get(error.error_detail)
        if group is None:
            groups[error.error_detail] = ErrorGroup(
                error_detail=error.error_detail,
                count=1,
                units=[error.unit_name],
                sample=error,
            )
        else:
            group.count += 1
            group.units.append(error.unit_name)
    return list(groups.values())


def aggregate(classifications: Iterable[ServerClassification]) -> FleetReport:
    """Reduce las clasificaciones de una corrida a un FleetReport."""
    report = FleetReport()
    buckets = {
        Classification.UPDATED: report.updated,
        Classification.UNCHANGED: report.unchanged,
        Classification.FAILED: report.failed,
    }

    for result in classifications:
        if result.server_name in report.servers:
            raise ValidationError(f"Servidor clasificado más de una vez: {result.server_name}")
        buckets[result.status].add(result.server_name)

        if result.status == Classification.FAILED:
            report.failures[result.server_name] = result
            if result.failure == FailureKind.PARTIAL_APPLY:
                report.error_groups[result.server_name] = group_unit_errors(result.unit_errors)

    return report
