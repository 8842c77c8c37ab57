"""
Ciclo de vida de la aplicacion (inicio y cierre).

Al iniciar: logging a archivo, carga del YAML, conexiones a origen y destino,
motor de sync y coordinador con un worker por tabla.
Al cerrar: se detienen los workers y se liberan los pools.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from loguru import logger

from tablesync.core.config import settings
from tablesync.infrastructure.database.session import DatabaseManager
from tablesync.infrastructure.table_sync.config_loader import SyncConfigFile, load_sync_config
from tablesync.infrastructure.table_sync.coordinator import SyncCoordinator
from tablesync.infrastructure.table_sync.sync_engine import SyncEngine


_file_sink_id: Optional[int] = None


def configure_logging() -> None:
    """Agrega el sink de archivo de loguru (una sola vez por proceso)."""
    global _file_sink_id
    if _file_sink_id is not None:
        return
    _file_sink_id = logger.add(
        settings.LOG_FILE,
        rotation="500 MB",
        retention="10 days",
        level=settings.LOG_LEVEL
    )


def load_config() -> SyncConfigFile:
    """Lee el YAML aplicando los overrides de URL del entorno."""
    return load_sync_config(
        settings.SYNC_CONFIG_PATH,
        source_url=settings.SOURCE_DATABASE_URL or None,
        target_url=settings.TARGET_DATABASE_URL or None,
    )


def build_coordinator(config: SyncConfigFile, databases: DatabaseManager) -> SyncCoordinator:
    engine = SyncEngine(databases.source, databases.target)
    return SyncCoordinator(
        engine,
        config.default_policy(),
        run_timeout=settings.SYNC_RUN_TIMEOUT_SECONDS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Lifespan de FastAPI.

    El coordinador queda en app.state.coordinator para las dependencias
    de los endpoints.
    """
    databases: Optional[DatabaseManager] = None
    coordinator: Optional[SyncCoordinator] = None
    try:
        configure_logging()
        logger.info(f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION}")
        logger.info(f"Entorno: {settings.ENVIRONMENT}")

        config = load_config()

        databases = DatabaseManager(
            config.source.to_url(),
            config.target.to_url(),
            echo=settings.DEBUG,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )
        databases.ping()

        coordinator = build_coordinator(config, databases)
        coordinator.start_all(config.table_specs())

        app.state.databases = databases
        app.state.coordinator = coordinator

        logger.success("Aplicacion iniciada correctamente")
        _print_available_urls()

    except Exception as e:
        logger.error(f"Error durante startup: {e}")
        logger.exception("Detalle del error:")
        if coordinator is not None:
            await coordinator.stop_all()
        if databases is not None:
            databases.close()
        raise

    try:
        yield
    finally:
        logger.info("Cerrando aplicacion...")

        await coordinator.stop_all()
        logger.info("Workers de sincronizacion detenidos")

        databases.close()
        logger.info("Conexiones de base de datos cerradas")

        logger.success("Aplicacion cerrada correctamente")


def _print_available_urls() -> None:
    """Imprime las URLs disponibles de la aplicacion."""
    if settings.HOST == "0.0.0.0":
        access_host = "localhost"
    else:
        access_host = settings.HOST

    base_url = f"http://{access_host}:{settings.PORT}"

    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
    logger.opt(colors=True).info("<bold><green>URLS DISPONIBLES:</green></bold>")
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
    logger.opt(colors=True).info(f"<cyan>  Swagger UI:  {base_url}/docs</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Trigger:     {base_url}/api/v1/sync/trigger</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Status:      {base_url}/api/v1/sync/status</cyan>")
    logger.opt(colors=True).info(f"<cyan>  Health:      {base_url}/health</cyan>")
    logger.opt(colors=True).info("<bold><green>" + "=" * 80 + "</green></bold>")
