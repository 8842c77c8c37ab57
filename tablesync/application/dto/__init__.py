"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .sync_dto import (
    SyncTriggerRequestDTO,
    SyncTriggerResponseDTO,
    TableStatusDTO,
    SyncStatusResponseDTO,
)

__all__ = [
    "SyncTriggerRequestDTO",
    "SyncTriggerResponseDTO",
    "TableStatusDTO",
    "SyncStatusResponseDTO",
]
