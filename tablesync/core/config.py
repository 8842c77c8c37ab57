"""
Configuracion central de la aplicacion.
Gestiona variables de entorno y configuraciones globales.

La configuracion de tablas vive en el YAML (SYNC_CONFIG_PATH); aqui solo
estan los parametros del proceso.
"""
import json
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno y proporciona valores por defecto.

    - SOURCE_DATABASE_URL / TARGET_DATABASE_URL reemplazan los bloques
      `source` / `target` del YAML si se definen
    - SYNC_RUN_TIMEOUT_SECONDS limita la duracion de cada corrida
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="TableSync")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8080)

    # Archivo YAML con las tablas a sincronizar
    SYNC_CONFIG_PATH: str = Field(default="config/sync-config.yaml")

    # Bases de datos - URL completa (override del YAML si se proporciona)
    SOURCE_DATABASE_URL: str = Field(default="")
    TARGET_DATABASE_URL: str = Field(default="")
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)

    # Tiempo maximo de una corrida (segundos)
    SYNC_RUN_TIMEOUT_SECONDS: float = Field(default=600.0)

    # CORS (acepta lista JSON o "*" para todos los origenes)
    CORS_ORIGINS: str = Field(default="*")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/tablesync.log")

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


def get_cors_origins(cors_string: str) -> List[str]:
    """
    Parsea la configuracion de CORS.
    Acepta "*" para todos los origenes o una lista JSON.
    """
    if cors_string == "*":
        return ["*"]
    try:
        return json.loads(cors_string)
    except json.JSONDecodeError:
        # Si no es JSON valido, retornar como lista simple
        return [origin.strip() for origin in cors_string.split(",")]


# Instancia global de configuracion
settings = Settings()
