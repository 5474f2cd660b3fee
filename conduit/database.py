from sqlalchemy import event, insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncEngine, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from conduit.config import settings
from conduit.middleware import install_query_counter


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    Take over transaction control from the sqlite3 driver so SAVEPOINT
    (``AsyncSession.begin_nested``) behaves the way it does on PostgreSQL.

    The driver otherwise defers BEGIN until the first DML statement, which
    lets an outermost RELEASE SAVEPOINT commit the whole transaction.
    """
    sync_engine = engine.sync_engine

    @event.listens_for(sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {}
    options: dict = {
        "pool_pre_ping": True,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
    }
    if url.startswith("postgresql+asyncpg"):
        # Per-statement deadline enforced by the driver.
        options["connect_args"] = {"command_timeout": settings.DB_COMMAND_TIMEOUT}
    return options


# Module-level engine variable allows tests to override with a test engine.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_options(settings.DATABASE_URL),
)

if settings.DATABASE_URL.startswith("sqlite"):
    enable_sqlite_savepoints(engine)

# Register the per-request SQL query counter on the production engine.
install_query_counter(engine)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


def insert_ignoring_conflicts(db: AsyncSession, table):
    """
    Return an INSERT for *table* that silently skips rows violating a
    unique or primary key constraint.

    ``result.rowcount`` tells the caller whether a row was written, which
    is how edge stores detect a first-time insert without a pre-check.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(table).on_conflict_do_nothing()
    if dialect == "sqlite":
        return sqlite_insert(table).on_conflict_do_nothing()
    return insert(table).prefix_with("IGNORE")


async def get_db():
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
