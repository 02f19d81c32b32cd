"""
Errores del Control Plane EPGuard.

El core solo define excepciones; la CLI se encarga del formato de salida.
"""


class EpGuardError(Exception):
    """Error base de EPGuard."""
    pass


class ValidationError(EpGuardError):
    """Entrada inválida (servidores duplicados, modelos inconsistentes)."""
    pass


class ConfigError(EpGuardError):
    """Error de configuración (inventario faltante, formato inválido)."""
    pass


class TransportError(EpGuardError):
    """El transporte remoto no entregó o no devolvió un resultado (red, auth, timeout)."""

    def __init__(self, host: str, message: str):
        super().__init__(f"{host}: {message}")
        self.host = host
        self.message = message


class BackupError(EpGuardError):
    """No se pudo respaldar o restaurar el archivo de configuración."""
    pass


class UnitApplyError(EpGuardError):
    """No se pudo escribir el valor de una unidad (virtual directory)."""

    def __init__(self, unit_name: str, message: str):
        super().__init__(f"{unit_name}: {message}")
        self.unit_name = unit_name
        self.message = message
