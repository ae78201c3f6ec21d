#!/usr/bin/env python3
"""
Script para gestionar las migraciones de cuentas corrientes con Alembic.

La URL de la base sale de cuentas.core.config (POSTGRES_* o DATABASE_URL).
"""
import logging
import sys
from pathlib import Path

from alembic.config import Config
from alembic import command

from cuentas.core.config import settings

root_dir = Path(__file__).parent

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("migrate")

USAGE = """Uso:
  python migrate.py create 'mensaje'     # Crear migración (autogenerate)
  python migrate.py upgrade [revisión]   # Aplicar migraciones (por defecto head)
  python migrate.py downgrade [revisión] # Revertir (por defecto -1)
  python migrate.py stamp [revisión]     # Marcar revisión sin ejecutar (por defecto head)
  python migrate.py history              # Ver historial
  python migrate.py current              # Ver revisión actual"""


def get_alembic_config() -> Config:
    alembic_cfg = Config(str(root_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(root_dir / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    return alembic_cfg


def create_migration(message: str):
    command.revision(get_alembic_config(), autogenerate=True, message=message)
    logger.info(f"Migración creada: {message}")


def run_migrations(revision: str = "head"):
    command.upgrade(get_alembic_config(), revision)
    logger.info(f"Base actualizada a {revision}")


def rollback_migration(revision: str = "-1"):
    command.downgrade(get_alembic_config(), revision)
    logger.info(f"Rollback ejecutado hasta {revision}")


def stamp(revision: str = "head"):
    command.stamp(get_alembic_config(), revision)
    logger.info(f"Base marcada en {revision}")


def main(argv) -> int:
    if len(argv) < 2:
        print(USAGE)
        return 1

    action, args = argv[1], argv[2:]

    if action == "create":
        if not args:
            print("Error: Se requiere un mensaje para la migración")
            return 1
        create_migration(args[0])
    elif action == "upgrade":
        run_migrations(*args[:1])
    elif action == "downgrade":
        rollback_migration(*args[:1])
    elif action == "stamp":
        stamp(*args[:1])
    elif action == "history":
        command.history(get_alembic_config())
    elif action == "current":
        command.current(get_alembic_config())
    else:
        print(f"Acción desconocida: {action}\n{USAGE}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
