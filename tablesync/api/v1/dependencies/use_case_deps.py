"""
Dependencias para inyeccion de casos de uso.
"""
from fastapi import Request

from tablesync.application.use_cases.sync_use_cases import SyncUseCases
from tablesync.infrastructure.table_sync.coordinator import SyncCoordinator


def get_coordinator(request: Request) -> SyncCoordinator:
    """
    Retorna el coordinador creado en el lifespan de la aplicacion.

    Args:
        request: Request actual (da acceso a app.state)

    Returns:
        SyncCoordinator: Coordinador de workers
    """
    return request.app.state.coordinator


def get_sync_use_cases(request: Request) -> SyncUseCases:
    """
    Dependencia para obtener los casos de uso del sincronizador.

    Returns:
        SyncUseCases: Instancia de casos de uso
    """
    return SyncUseCases(get_coordinator(request))
