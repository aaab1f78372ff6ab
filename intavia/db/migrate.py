"""
Database migration runner for Alembic migrations.
"""
import logging
import os
from typing import Optional

from alembic.config import Config
from alembic import command
from sqlalchemy import create_engine, text

from intavia.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

ADVISORY_LOCK_ID = 731245091


def run_migrations(settings: Optional[Settings] = None):
    """
    Run Alembic migrations to head revision.
    Uses a Postgres advisory lock so concurrent instances do not migrate twice.
    """
    settings = settings or get_settings()
    if not settings.database_url:
        raise ValueError("DATABASE_URL is not set")

    logger.info("Running alembic upgrade head")

    alembic_ini_path = os.path.join(
        os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "alembic.ini"
    )
    alembic_cfg = Config(alembic_ini_path)
    alembic_cfg.attributes["database_url"] = settings.database_url

    engine = create_engine(settings.database_url, pool_pre_ping=True)
    lock_conn = None
    is_postgres = settings.database_url.startswith("postgresql")

    try:
        if is_postgres:
            lock_conn = engine.connect()
            try:
                lock_conn.execute(text(f"SELECT pg_advisory_lock({ADVISORY_LOCK_ID})"))
                lock_conn.commit()
                logger.info("Migration lock acquired")
            except Exception as lock_error:
                logger.warning(f"Could not acquire advisory lock: {lock_error}")
                lock_conn.close()
                lock_conn = None

        command.upgrade(alembic_cfg, "head")
        logger.info("Migrations complete")

    except Exception:
        logger.exception("Migration failed")
        raise
    finally:
        if lock_conn:
            try:
                lock_conn.execute(text(f"SELECT pg_advisory_unlock({ADVISORY_LOCK_ID})"))
                lock_conn.commit()
            except Exception as unlock_error:
                logger.warning(f"Could not release advisory lock: {unlock_error}")
            finally:
                lock_conn.close()
        engine.dispose()


if __name__ == "__main__":
    run_migrations()
