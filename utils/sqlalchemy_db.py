"""SQLAlchemy database connection and session management."""

import ssl

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from models.base import Base


# Create SSL context
def create_ssl_context(cert_dir: str = "ssl-cert") -> ssl.SSLContext:
    """Create SSL context for database connection."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.load_verify_locations(f"{cert_dir}/server-ca.pem")
    context.load_cert_chain(f"{cert_dir}/client-cert.pem", f"{cert_dir}/client-key.pem")
    return context


def create_engine(database_url: str, use_ssl: bool = False) -> AsyncEngine:
    """Create the async engine for the gallery store.

    Postgres (asyncpg) gets a pooled engine; SQLite is used for local runs and tests.
    """
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=False)

    connect_args = {"ssl": create_ssl_context()} if use_ssl else {}
    return create_async_engine(
        database_url,
        connect_args=connect_args,
        echo=False,  # Set to True for SQL query logging
        pool_size=20,  # Maximum number of connections
        max_overflow=0,  # Maximum number of connections that can be created beyond pool_size
        pool_timeout=30,  # Seconds to wait before giving up on getting a connection from the pool
        pool_recycle=300,  # Recycle connections after 5 minutes
        pool_pre_ping=True,  # Check connection validity before using it
    )


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``."""
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def init_models(engine: AsyncEngine) -> None:
    """Create any missing tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
