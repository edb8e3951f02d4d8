"""PostgreSQL async connection pool."""

from psycopg_pool import AsyncConnectionPool


def create_pool(conninfo: str, min_size: int = 2, max_size: int = 10) -> AsyncConnectionPool:
    """Create async connection pool.

    Pool is created with open=False. Caller must call await pool.open()
    before use (see ``tenantguard.main.container``).
    """
    return AsyncConnectionPool(
        conninfo=conninfo,
        min_size=min_size,
        max_size=max_size,
        open=False,
    )


def create_autocommit_pool(
    conninfo: str, min_size: int = 1, max_size: int = 4
) -> AsyncConnectionPool:
    """Pool whose connections autocommit; used for cache and audit writes."""

    async def configure(conn) -> None:
        await conn.set_autocommit(True)

    return AsyncConnectionPool(
        conninfo=conninfo,
        min_size=min_size,
        max_size=max_size,
        configure=configure,
        open=False,
    )
