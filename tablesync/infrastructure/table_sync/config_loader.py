"""
Carga del archivo YAML de sincronizacion.

Estructura esperada:

    source:   {type: mssql, host, port, database, username, password}
    target:   {type: postgresql, host, port, database, username, password, sslmode}
    defaults: {refresh_rate, auto_trigger, manual_trigger, create_target_table}
    tables:
      - source_table: dbo.Users
        target_table: public.users
        refresh_rate: 60
        fields: [Id, Name]
        filter: "Active = 1"

Cada bloque de conexion acepta tambien `url` completa (override de los
componentes). Se lee una sola vez al inicio: no hay recarga en caliente.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

import yaml
from loguru import logger
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, model_validator
from sqlalchemy.engine import URL, make_url

from tablesync.infrastructure.table_sync.sync_config import DefaultPolicy, TableSyncSpec
from tablesync.shared.constants.sync_constants import (
    DEFAULT_AUTO_TRIGGER,
    DEFAULT_CREATE_TARGET_TABLE,
    DEFAULT_MANUAL_TRIGGER,
    DEFAULT_REFRESH_RATE_SECONDS,
    SyncAction,
)
from tablesync.shared.exceptions.sync import ConfigurationError


DRIVERS = {
    "mssql": "mssql+pymssql",
    "postgresql": "postgresql+psycopg",
    "sqlite": "sqlite",
}

DEFAULT_PORTS = {
    "mssql": 1433,
    "postgresql": 5432,
}


class ConnectionConfig(BaseModel):
    """Bloque `source` / `target` del YAML."""

    model_config = ConfigDict(extra="ignore")

    type: Optional[Literal["mssql", "postgresql", "sqlite"]] = None
    host: str = "localhost"
    port: Optional[int] = None
    database: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    sslmode: Optional[str] = None
    url: Optional[str] = None

    @model_validator(mode="after")
    def _type_or_url(self) -> "ConnectionConfig":
        if not self.url and not self.type:
            raise ValueError("se requiere 'type' o 'url'")
        return self

    def to_url(self) -> URL:
        """Construye la URL de SQLAlchemy para la conexion."""
        if self.url:
            return make_url(self.url)

        if self.type == "sqlite":
            return URL.create(DRIVERS["sqlite"], database=self.database)

        query: Dict[str, str] = {}
        if self.type == "postgresql":
            query["sslmode"] = self.sslmode or "disable"

        return URL.create(
            DRIVERS[self.type],
            username=self.username,
            password=self.password,
            host=self.host,
            port=self.port or DEFAULT_PORTS[self.type],
            database=self.database,
            query=query,
        )


class DefaultsConfig(BaseModel):
    """Politica por defecto. Acepta tambien los nombres proto_actor_trigger / webapi_trigger."""

    model_config = ConfigDict(extra="ignore")

    refresh_rate: int = Field(default=DEFAULT_REFRESH_RATE_SECONDS, ge=1)
    auto_trigger: bool = Field(
        default=DEFAULT_AUTO_TRIGGER,
        validation_alias=AliasChoices("auto_trigger", "proto_actor_trigger"),
    )
    manual_trigger: bool = Field(
        default=DEFAULT_MANUAL_TRIGGER,
        validation_alias=AliasChoices("manual_trigger", "webapi_trigger"),
    )
    create_target_table: bool = Field(default=DEFAULT_CREATE_TARGET_TABLE)

    def to_policy(self) -> DefaultPolicy:
        return DefaultPolicy(
            refresh_rate=self.refresh_rate,
            auto_trigger=self.auto_trigger,
            manual_trigger=self.manual_trigger,
            create_target_table=self.create_target_table,
        )


class TableConfig(BaseModel):
    """Entrada de la lista `tables`."""

    model_config = ConfigDict(extra="ignore")

    source_table: str
    target_table: str
    sync_action: str = SyncAction.FULL_REFRESH.value
    refresh_rate: Optional[int] = None
    auto_trigger: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("auto_trigger", "proto_actor_trigger")
    )
    manual_trigger: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("manual_trigger", "webapi_trigger")
    )
    fields: List[str] = Field(default_factory=list)
    filter: Optional[str] = None

    def to_spec(self) -> TableSyncSpec:
        return TableSyncSpec(
            source_table=self.source_table,
            target_table=self.target_table,
            refresh_rate=self.refresh_rate,
            auto_trigger=self.auto_trigger,
            manual_trigger=self.manual_trigger,
            fields=tuple(self.fields),
            filter=self.filter or None,
            sync_action=self.sync_action,
        )


class SyncConfigFile(BaseModel):
    """Archivo de configuracion completo ya validado."""

    model_config = ConfigDict(extra="ignore")

    source: ConnectionConfig
    target: ConnectionConfig
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    tables: List[TableConfig] = Field(default_factory=list)

    def default_policy(self) -> DefaultPolicy:
        return self.defaults.to_policy()

    def table_specs(self) -> List[TableSyncSpec]:
        return [table.to_spec() for table in self.tables]


def parse_sync_config(
    raw: Any,
    *,
    source_url: Optional[str] = None,
    target_url: Optional[str] = None,
) -> SyncConfigFile:
    """
    Valida un dict ya parseado del YAML.

    Args:
        raw: Contenido del archivo (dict)
        source_url: URL que reemplaza al bloque `source` (variable de entorno)
        target_url: URL que reemplaza al bloque `target`

    Raises:
        ConfigurationError: estructura invalida o tabla mal definida
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigurationError("el archivo de configuracion debe ser un mapa YAML")

    raw = dict(raw)
    for key, override in (("source", source_url), ("target", target_url)):
        if override:
            block = dict(raw.get(key) or {})
            block["url"] = override
            raw[key] = block

    try:
        config = SyncConfigFile.model_validate(raw)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"configuracion invalida: {details}", cause=e) from e

    # Valida cada tabla (identificadores vacios, sync_action no soportado)
    config.table_specs()
    return config


def load_sync_config(
    path: Union[str, Path],
    *,
    source_url: Optional[str] = None,
    target_url: Optional[str] = None,
) -> SyncConfigFile:
    """
    Lee y valida el archivo YAML de sincronizacion.

    Raises:
        ConfigurationError: archivo inexistente, YAML roto o contenido invalido
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"no se pudo leer {path}: {e}", cause=e) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"YAML invalido en {path}: {e}", cause=e) from e

    config = parse_sync_config(raw, source_url=source_url, target_url=target_url)
    logger.info(f"Configuracion de sync cargada desde {path}: {len(config.tables)} tabla(s)")
    return config
