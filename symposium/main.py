"""
Symposium registration portal.
Entry point: configures logging, prepares the database and builds the Portal
the web front-end talks to. Run directly to check the setup and print a
roster summary.
"""
import asyncio
import logging
import sys
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from symposium.config import settings
from symposium.models.base import AsyncSessionFactory, create_tables, engine
from symposium.portal import Portal
from symposium.services.blob_store import BlobStore

logger = logging.getLogger(__name__)


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stdout,
    )


async def bootstrap(
    bind: AsyncEngine = engine,
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionFactory,
    blob_store: Optional[BlobStore] = None,
) -> Portal:
    """Create missing tables and return a ready Portal."""
    try:
        await create_tables(bind)
    except SQLAlchemyError:
        logger.critical(
            "Cannot connect to database at %s "
            "(locally use DATABASE_URL=sqlite+aiosqlite:///./symposium.db)",
            settings.DATABASE_URL.split("@")[-1],   # hide credentials in log
        )
        raise
    logger.info("Database tables ready.")

    if not settings.upi_enabled:
        logger.warning("UPI_PAYEE_VPA is not set; payment QR codes will carry no payee")
    if not settings.ADMIN_SECRET:
        logger.warning("ADMIN_SECRET is not set; nobody can unlock write access")

    return Portal(session_factory=session_factory, blob_store=blob_store)


async def main() -> None:
    configure_logging()
    logger.info("Starting symposium portal…")
    portal = await bootstrap()
    try:
        stats = await portal.roster_stats()
        logger.info(
            "%d registrations, %d paid, %.1f%% of fees collected",
            stats.total, stats.paid_count, stats.collection_pct,
        )
        for event in stats.event_popularity():
            logger.info("  %-14s %3d", event.name, event.count)
    finally:
        await engine.dispose()
        logger.info("Shutdown complete.")


if __name__ == "__main__":
    asyncio.run(main())
