"""
Endpoints de sincronizacion de tablas.
Permiten disparar corridas manuales y consultar la configuracion activa.
"""
from fastapi import APIRouter, Depends, status

from tablesync.application.dto.sync_dto import (
    SyncStatusResponseDTO,
    SyncTriggerRequestDTO,
    SyncTriggerResponseDTO,
)
from tablesync.application.use_cases.sync_use_cases import SyncUseCases
from tablesync.api.v1.dependencies.use_case_deps import get_sync_use_cases


router = APIRouter(prefix="/sync", tags=["Sync"])


@router.post(
    "/trigger",
    response_model=SyncTriggerResponseDTO,
    status_code=status.HTTP_200_OK,
    summary="Disparar una sincronizacion manual"
)
async def trigger_sync(
    dto: SyncTriggerRequestDTO,
    use_cases: SyncUseCases = Depends(get_sync_use_cases)
) -> SyncTriggerResponseDTO:
    """
    Encola una corrida manual para una tabla (`table_name`) o para todas
    (`sync_all`).

    Responde apenas el disparo se envia: un 200 no indica que la corrida
    haya terminado ni que haya sido exitosa.

    Errores:
    - 400 si no se indica table_name ni sync_all
    - 404 si la tabla no esta configurada
    - 403 si la tabla tiene el disparo manual deshabilitado
    """
    return use_cases.trigger(dto)


@router.get(
    "/status",
    response_model=SyncStatusResponseDTO,
    summary="Estado de las tablas configuradas"
)
async def get_sync_status(
    use_cases: SyncUseCases = Depends(get_sync_use_cases)
) -> SyncStatusResponseDTO:
    """Lista cada tabla con su intervalo y sus disparadores habilitados."""
    return use_cases.get_status()
