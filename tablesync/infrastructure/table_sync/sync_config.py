"""
Configuración del sync (tabla origen -> tabla destino).

Aquí se define:
- la especificacion inmutable de cada tabla (TableSyncSpec)
- la politica por defecto que completa los campos no definidos
- la vista resuelta que consumen el motor y el worker

Este módulo no realiza I/O: solo define configuración.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from tablesync.shared.constants.sync_constants import (
    DEFAULT_AUTO_TRIGGER,
    DEFAULT_CREATE_TARGET_TABLE,
    DEFAULT_MANUAL_TRIGGER,
    DEFAULT_REFRESH_RATE_SECONDS,
    MIN_REFRESH_RATE_SECONDS,
    SyncAction,
)
from tablesync.shared.exceptions.sync import ConfigurationError


@dataclass(frozen=True)
class DefaultPolicy:
    """Valores que se aplican cuando una tabla no define el campo."""

    refresh_rate: int = DEFAULT_REFRESH_RATE_SECONDS
    auto_trigger: bool = DEFAULT_AUTO_TRIGGER
    manual_trigger: bool = DEFAULT_MANUAL_TRIGGER
    create_target_table: bool = DEFAULT_CREATE_TARGET_TABLE


@dataclass(frozen=True)
class TableSyncSpec:
    """
    Config de una tabla origen -> una tabla destino.

    Los identificadores pueden venir calificados ("schema.tabla") o solos;
    en ese caso se aplica el schema por defecto del dialecto.

    NOTA sobre `filter`:
    - Se agrega tal cual como WHERE. Es configuracion escrita por el
      operador y no se sanitiza ni se parsea.
    """

    source_table: str
    target_table: str
    refresh_rate: Optional[int] = None
    auto_trigger: Optional[bool] = None
    manual_trigger: Optional[bool] = None
    fields: tuple[str, ...] = field(default_factory=tuple)
    filter: Optional[str] = None
    sync_action: str = SyncAction.FULL_REFRESH.value

    def __post_init__(self) -> None:
        if not self.source_table or not self.source_table.strip():
            raise ConfigurationError("source_table no puede estar vacio", table=self.target_table or None)
        if not self.target_table or not self.target_table.strip():
            raise ConfigurationError("target_table no puede estar vacio", table=self.source_table)
        if self.sync_action != SyncAction.FULL_REFRESH.value:
            raise ConfigurationError(
                f"sync_action no soportado: '{self.sync_action}' (solo '{SyncAction.FULL_REFRESH.value}')",
                table=self.target_table,
            )
        # Permite pasar listas desde el loader sin romper la inmutabilidad
        object.__setattr__(self, "fields", tuple(self.fields or ()))

    def configured_refresh_rate(self, defaults: DefaultPolicy) -> int:
        """Valor tal como viene en la config (sin el minimo del timer)."""
        rate = self.refresh_rate if self.refresh_rate is not None else defaults.refresh_rate
        return int(rate)

    def get_refresh_rate(self, defaults: DefaultPolicy) -> int:
        return max(self.configured_refresh_rate(defaults), MIN_REFRESH_RATE_SECONDS)

    def is_auto_trigger_enabled(self, defaults: DefaultPolicy) -> bool:
        if self.auto_trigger is not None:
            return self.auto_trigger
        return defaults.auto_trigger

    def is_manual_trigger_enabled(self, defaults: DefaultPolicy) -> bool:
        if self.manual_trigger is not None:
            return self.manual_trigger
        return defaults.manual_trigger

    def resolve(self, defaults: DefaultPolicy) -> "ResolvedTableSync":
        return ResolvedTableSync(
            spec=self,
            refresh_rate=self.get_refresh_rate(defaults),
            auto_trigger=self.is_auto_trigger_enabled(defaults),
            manual_trigger=self.is_manual_trigger_enabled(defaults),
            create_target_table=defaults.create_target_table,
        )


@dataclass(frozen=True)
class ResolvedTableSync:
    """TableSyncSpec con todos los valores opcionales ya resueltos."""

    spec: TableSyncSpec
    refresh_rate: int
    auto_trigger: bool
    manual_trigger: bool
    create_target_table: bool

    @property
    def source_table(self) -> str:
        return self.spec.source_table

    @property
    def target_table(self) -> str:
        return self.spec.target_table

    @property
    def fields(self) -> tuple[str, ...]:
        return self.spec.fields

    @property
    def filter(self) -> Optional[str]:
        return self.spec.filter


@dataclass(frozen=True)
class TableStatus:
    """
    Estado publicado por tabla (derivado de la config, no del worker).

    refresh_rate se informa tal como esta configurado; el minimo de 1s solo
    se aplica al armar el timer.
    """

    source_table: str
    target_table: str
    refresh_rate: int
    auto_trigger: bool
    manual_trigger: bool

    @classmethod
    def from_spec(cls, spec: TableSyncSpec, defaults: DefaultPolicy) -> "TableStatus":
        return cls(
            source_table=spec.source_table,
            target_table=spec.target_table,
            refresh_rate=spec.configured_refresh_rate(defaults),
            auto_trigger=spec.is_auto_trigger_enabled(defaults),
            manual_trigger=spec.is_manual_trigger_enabled(defaults),
        )
