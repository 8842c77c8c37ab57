"""
CLI: ejecuta una corrida de sincronizacion sin levantar el API.

Uso recomendado:
  - Carga inicial de tablas antes de habilitar el servicio.
  - Diagnostico de una tabla puntual (mismo motor que usan los workers).

Ejecución:
  python scripts/run_table_sync.py
  python scripts/run_table_sync.py --table public.users
  python scripts/run_table_sync.py --schema-only
  python scripts/run_table_sync.py --config config/sync-config.yaml
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

load_dotenv(_ROOT / ".env", override=False)

from tablesync.core.config import settings
from tablesync.infrastructure.database.session import DatabaseManager
from tablesync.infrastructure.table_sync.config_loader import load_sync_config
from tablesync.infrastructure.table_sync.run_context import RunContext
from tablesync.infrastructure.table_sync.sync_engine import SyncEngine
from tablesync.shared.exceptions.sync import SyncError


def main() -> int:
    parser = argparse.ArgumentParser(description="Sincroniza tablas origen -> destino una vez.")
    parser.add_argument(
        "--config",
        default=settings.SYNC_CONFIG_PATH,
        help="Archivo YAML de sincronizacion.",
    )
    parser.add_argument(
        "--table",
        default=None,
        help="Tabla destino a sincronizar (por defecto, todas).",
    )
    parser.add_argument(
        "--schema-only",
        action="store_true",
        help="Solo crea las tablas destino faltantes (no copia filas).",
    )
    args = parser.parse_args()

    try:
        config = load_sync_config(
            args.config,
            source_url=settings.SOURCE_DATABASE_URL or None,
            target_url=settings.TARGET_DATABASE_URL or None,
        )
    except SyncError as e:
        logger.error(str(e))
        return 2

    specs = config.table_specs()
    if args.table:
        specs = [spec for spec in specs if spec.target_table == args.table]
        if not specs:
            logger.error(f"Tabla no encontrada en la configuracion: {args.table}")
            return 2

    policy = config.default_policy()
    databases = DatabaseManager(config.source.to_url(), config.target.to_url(), echo=settings.DEBUG)
    engine = SyncEngine(databases.source, databases.target)

    failures = 0
    try:
        for spec in specs:
            table = spec.resolve(policy)
            try:
                if args.schema_only:
                    columns = engine.introspect(table)
                    if not columns:
                        logger.warning(f"{table.target_table}: sin columnas que proyectar")
                        continue
                    created = engine.ensure_target_table(table, columns)
                    logger.info(f"{table.target_table}: {'creada' if created else 'ya existia'}")
                    continue

                report = engine.sync_table(table, RunContext(settings.SYNC_RUN_TIMEOUT_SECONDS))
                logger.info(
                    f"Sync OK {report.table}: filas={report.rows_loaded}, "
                    f"tabla_creada={report.created_table}, duracion={report.duration_ms:.1f}ms"
                )
            except SyncError as e:
                failures += 1
                logger.error(f"Sync FALLIDO {spec.target_table}: {e}")
            except Exception as e:
                failures += 1
                logger.error(f"Sync FALLIDO {spec.target_table}: {type(e).__name__}: {e}")
    finally:
        databases.close()

    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
