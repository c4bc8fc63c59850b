"""
Database engine + session factory.

Always initializes. Defaults to SQLite for local dev, Postgres in production.
get_session() always returns a real session.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from lead_engine.config import DATABASE_URL


class Base(DeclarativeBase):
    pass


def enable_sqlite_savepoints(engine):
    """
    Let SQLAlchemy emit BEGIN itself on pysqlite connections.

    pysqlite's own transaction handling breaks SAVEPOINT, which the
    suggestion dedup insert relies on.
    """
    @event.listens_for(engine, 'connect')
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, 'begin')
    def _emit_begin(conn):
        conn.exec_driver_sql('BEGIN')

    return engine


# Some hosts inject postgres:// but SQLAlchemy 2.x requires postgresql://
url = DATABASE_URL.replace('postgres://', 'postgresql://', 1)

if url.startswith('sqlite'):
    engine = enable_sqlite_savepoints(create_engine(url, connect_args={'check_same_thread': False}))
else:
    engine = create_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=10)

SessionLocal = sessionmaker(bind=engine)


def get_session():
    """Return a new DB session."""
    return SessionLocal()
