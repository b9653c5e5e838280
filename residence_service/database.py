from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import DATABASE_URL

if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False, "timeout": 30})
else:
    engine = create_engine(DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    Yield a SQLAlchemy database session for the residence service.

    This function is used as a FastAPI dependency, creating a scoped
    session per HTTP request and ensuring it is closed afterwards.

    Yields
    ------
    Session
        Active SQLAlchemy session bound to the residence database engine.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def begin_write(db: Session) -> None:
    """
    Take the database write lock for the rest of the session's transaction.

    SQLite ignores ``SELECT ... FOR UPDATE`` and the sqlite3 driver only
    opens a transaction at the first INSERT/UPDATE/DELETE, so reads made
    before that run unlocked. ``BEGIN IMMEDIATE`` acquires the write lock up
    front; other writers wait (up to the connection timeout) until this
    transaction commits or rolls back. On other backends this is a no-op and
    row locks are taken with ``with_for_update()``.
    """
    connection = db.connection()
    if connection.dialect.name != "sqlite":
        return
    if not connection.connection.driver_connection.in_transaction:
        connection.exec_driver_sql("BEGIN IMMEDIATE")
