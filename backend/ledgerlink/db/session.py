"""Database session management."""

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from ledgerlink.core.config import settings
from ledgerlink.services.audit_service import AuditContext, install_audit_hook

connect_args = {}
pool_config = {}

if settings.database_url.startswith("sqlite"):
    connect_args = {"check_same_thread": False}
    pool_config = {
        "pool_pre_ping": True,
        "pool_recycle": 1800,
    }
else:
    pool_config = {
        "pool_size": 20,
        "max_overflow": 40,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }

engine = create_engine(
    settings.database_url,
    connect_args=connect_args,
    echo=settings.debug and settings.log_level == "DEBUG",
    **pool_config,
)

# Enable foreign key enforcement for SQLite
if settings.database_url.startswith("sqlite"):
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
install_audit_hook(SessionLocal)


def get_db() -> Generator[Session, None, None]:
    """Get database session dependency.

    Every session carries its own ``AuditContext`` built from settings; the
    request layer fills in the actor once it is known.
    """
    db = SessionLocal()
    AuditContext.from_settings(settings).attach(db)
    try:
        yield db
    finally:
        db.close()


DbSession = Annotated[Session, Depends(get_db)]
