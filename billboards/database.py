"""
Connexion a la base de donnees / Database connection.
Supporte SQLite (dev) et PostgreSQL (prod) via SQLAlchemy 2.0 async.
"""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from billboards.config import settings

logger = logging.getLogger(__name__)

_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

# Configuration moteur / Engine configuration
_engine_kwargs: dict = {
    "echo": settings.DEBUG,
}

# PostgreSQL : connection pooling / PostgreSQL: connection pooling
if not _is_sqlite:
    _engine_kwargs.update({
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    })

engine = create_async_engine(settings.DATABASE_URL, **_engine_kwargs)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:
    """Dependance FastAPI pour obtenir une session DB / FastAPI dependency for DB session."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db(bind: AsyncEngine | None = None):
    """Creer les tables au demarrage / Create tables on startup."""
    import billboards.models  # noqa: F401 enregistrer les modeles / register models

    target = bind or engine
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    if target.dialect.name == "postgresql":
        await _install_overlap_constraint(target)


async def _install_overlap_constraint(target: AsyncEngine):
    """Contrainte d'exclusion anti-chevauchement / Storage-level no-overlap exclusion constraint.

    Deux locations ACTIVE d'un meme panneau ne peuvent pas avoir d'intervalles
    [start, end) qui se chevauchent, meme sans transaction serialisable.
    """
    async with target.begin() as conn:
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS btree_gist"))
        result = await conn.execute(
            text("SELECT 1 FROM pg_constraint WHERE conname = :name"),
            {"name": "rentals_no_overlap"},
        )
        if result.scalar_one_or_none():
            return
        await conn.execute(text(
            "ALTER TABLE rentals ADD CONSTRAINT rentals_no_overlap "
            "EXCLUDE USING gist ("
            "billboard_id WITH =, "
            "daterange(start_date, end_exclusive, '[)') WITH &&"
            ") WHERE (status = 'ACTIVE')"
        ))
        logger.info("[init_db] Exclusion constraint rentals_no_overlap installed")
