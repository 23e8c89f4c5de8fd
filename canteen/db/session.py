"""Database engine and async session management."""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from canteen.core.config import settings

engine: AsyncEngine = create_async_engine(settings.database_url)
SessionLocal = async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session and ensure proper cleanup."""
    async with SessionLocal() as db:
        yield db


async def create_schema() -> None:
    """Create all tables on the current engine."""
    from canteen.db.base import Base

    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
