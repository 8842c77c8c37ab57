"""
Gestión de conexiones a las bases origen y destino.

Se usan engines sincronos de SQLAlchemy: el motor de sync corre en threads
dedicados por tabla, asi que cada corrida toma su conexion del pool.
"""
from typing import Union

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url


def _create_engine_args(url: URL, *, echo: bool, pool_size: int, max_overflow: int) -> dict:
    """
    Construye los argumentos del engine segun el tipo de base de datos.
    SQLite usa el pool por defecto de SQLAlchemy.
    """
    args = {"echo": echo}

    if url.get_backend_name() != "sqlite":
        args.update({
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_pre_ping": True,  # Verifica conexion antes de usar
        })

    return args


def create_sync_engine(
    url: Union[str, URL],
    *,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
) -> Engine:
    url = make_url(url)
    return create_engine(
        url, **_create_engine_args(url, echo=echo, pool_size=pool_size, max_overflow=max_overflow)
    )


class DatabaseManager:
    """
    Par de engines origen / destino.

    Un unico objeto por proceso; lo comparten todos los workers.
    """

    def __init__(
        self,
        source_url: Union[str, URL],
        target_url: Union[str, URL],
        *,
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
    ) -> None:
        self.source = create_sync_engine(
            source_url, echo=echo, pool_size=pool_size, max_overflow=max_overflow
        )
        self.target = create_sync_engine(
            target_url, echo=echo, pool_size=pool_size, max_overflow=max_overflow
        )

    def ping(self) -> None:
        """
        Verifica ambas conexiones.

        Raises:
            sqlalchemy.exc.OperationalError: si alguna base no responde
        """
        for label, engine in (("origen", self.source), ("destino", self.target)):
            logger.info(f"Conectando a base {label} ({engine.dialect.name})")
            with engine.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
            logger.info(f"Conexion a base {label} OK")

    def close(self) -> None:
        """Cierra los pools de conexiones."""
        self.source.dispose()
        self.target.dispose()
