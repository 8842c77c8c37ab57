"""
Casos de uso del sincronizador expuestos por la API.
Validan el disparo manual contra la configuracion antes de enviarlo al
coordinador.
"""
from loguru import logger

from tablesync.application.dto.sync_dto import (
    SyncStatusResponseDTO,
    SyncTriggerRequestDTO,
    SyncTriggerResponseDTO,
    TableStatusDTO,
)
from tablesync.infrastructure.table_sync.coordinator import SyncCoordinator
from tablesync.shared.exceptions.domain import (
    ManualTriggerDisabledException,
    TableNotFoundException,
    ValidationException,
)


class SyncUseCases:
    """Disparo manual y consulta de estado."""

    def __init__(self, coordinator: SyncCoordinator):
        self.coordinator = coordinator

    def trigger(self, dto: SyncTriggerRequestDTO) -> SyncTriggerResponseDTO:
        """
        Envia una corrida manual de una tabla o de todas.

        La respuesta confirma el envio; el resultado de la corrida se ve
        despues en los logs.

        Raises:
            ValidationException: no se indico table_name ni sync_all
            TableNotFoundException: la tabla no esta configurada
            ManualTriggerDisabledException: la tabla no admite disparo manual
        """
        logger.info(f"Disparo manual solicitado: table_name={dto.table_name}, sync_all={dto.sync_all}")

        if dto.sync_all:
            count = self.coordinator.trigger_all()
            return SyncTriggerResponseDTO(
                success=True,
                message=f"Sync disparado para todas las tablas ({count})"
            )

        table_name = (dto.table_name or "").strip()
        if not table_name:
            raise ValidationException(
                "Se debe indicar table_name o sync_all",
                field="table_name"
            )

        spec = self.coordinator.get_spec(table_name)
        if spec is None:
            raise TableNotFoundException(table_name)

        if not spec.is_manual_trigger_enabled(self.coordinator.defaults):
            logger.warning(f"Disparo manual rechazado para {table_name}: deshabilitado")
            raise ManualTriggerDisabledException(table_name)

        self.coordinator.trigger_one(table_name)
        return SyncTriggerResponseDTO(
            success=True,
            message=f"Sync disparado para la tabla: {table_name}"
        )

    def get_status(self) -> SyncStatusResponseDTO:
        """Estado de todas las tablas, derivado de la configuracion."""
        return SyncStatusResponseDTO(
            status="running",
            tables=[TableStatusDTO.model_validate(status) for status in self.coordinator.status()]
        )
