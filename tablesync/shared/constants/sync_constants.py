"""
Constantes del sincronizador: estados del worker, tipos de disparo y
valores por defecto.
"""
from enum import Enum


class WorkerState(str, Enum):
    """Estados posibles de un worker de sincronizacion."""
    IDLE = "idle"
    SCHEDULED = "scheduled"
    SYNCING = "syncing"
    STOPPING = "stopping"
    STOPPED = "stopped"


class TriggerKind(str, Enum):
    """Origen de una corrida."""
    SCHEDULED = "scheduled"
    MANUAL = "manual"


class SyncAction(str, Enum):
    """Estrategias de sincronizacion soportadas."""
    FULL_REFRESH = "full_refresh"


# Tiempo maximo de una corrida (introspeccion + fetch + carga)
DEFAULT_RUN_TIMEOUT_SECONDS = 600.0

# Intervalo minimo entre corridas programadas
MIN_REFRESH_RATE_SECONDS = 1

# Valores por defecto cuando el YAML no define la seccion `defaults`
DEFAULT_REFRESH_RATE_SECONDS = 300
DEFAULT_AUTO_TRIGGER = True
DEFAULT_MANUAL_TRIGGER = True
DEFAULT_CREATE_TARGET_TABLE = True
