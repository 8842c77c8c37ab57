"""
Excepciones de dominio que la API traduce a respuestas HTTP.
"""
from tablesync.shared.exceptions.base import AppException


class DomainException(AppException):
    """Excepción base para errores de dominio."""

    def __init__(self, message: str, error_code: str = "DOMAIN_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details
        )


class ValidationException(DomainException):
    """Excepción para errores de validación."""

    def __init__(self, message: str, field: str = None):
        details = {"field": field} if field else None
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=details
        )


class TableNotFoundException(DomainException):
    """Excepcion cuando la tabla destino no esta configurada."""

    def __init__(self, table_name: str):
        super().__init__(
            message=f"Tabla no encontrada: {table_name}",
            error_code="TABLE_NOT_FOUND",
            details={"table_name": table_name}
        )
        self.status_code = 404


class ManualTriggerDisabledException(DomainException):
    """Excepcion cuando la tabla no admite disparo manual."""

    def __init__(self, table_name: str):
        super().__init__(
            message=f"El disparo manual esta deshabilitado para la tabla: {table_name}",
            error_code="MANUAL_TRIGGER_DISABLED",
            details={"table_name": table_name}
        )
        self.status_code = 403
