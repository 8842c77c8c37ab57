"""
DTOs relacionados con la sincronizacion de tablas.
Definen la estructura de las peticiones de disparo y del estado publicado.
"""
from typing import List, Optional
from pydantic import BaseModel, Field


class SyncTriggerRequestDTO(BaseModel):
    """DTO para solicitar una corrida manual."""

    table_name: Optional[str] = Field(
        None,
        description="Tabla destino a sincronizar (tal como figura en target_table)"
    )
    sync_all: bool = Field(
        False,
        description="Si True, dispara todas las tablas configuradas"
    )


class SyncTriggerResponseDTO(BaseModel):
    """
    Respuesta a un disparo manual.

    success=True significa que el disparo fue enviado, no que la corrida
    haya terminado bien.
    """

    success: bool = Field(..., description="Indica si el disparo fue enviado")
    message: str = Field(..., description="Mensaje descriptivo")


class TableStatusDTO(BaseModel):
    """Estado de una tabla configurada."""

    source_table: str = Field(..., description="Tabla origen")
    target_table: str = Field(..., description="Tabla destino")
    refresh_rate: int = Field(..., description="Intervalo entre corridas programadas (segundos)")
    auto_trigger: bool = Field(..., description="Corridas programadas habilitadas")
    manual_trigger: bool = Field(..., description="Disparo manual habilitado")

    class Config:
        """Configuracion de Pydantic."""
        from_attributes = True


class SyncStatusResponseDTO(BaseModel):
    """Estado general del sincronizador."""

    status: str = Field("running", description="Estado del servicio")
    tables: List[TableStatusDTO] = Field(default_factory=list)
