import asyncio
import logging

from loanops import models  # noqa: F401 - register tables on Base.metadata
from loanops.db.base import Base
from loanops.db.session import engine

logger = logging.getLogger(__name__)


async def init_db() -> None:
    """
    Create missing tables. Schema changes beyond that go through Alembic.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


if __name__ == "__main__":
    asyncio.run(init_db())
