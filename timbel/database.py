from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from timbel.config.settings import Settings


def _connect_args() -> dict:
    if Settings.is_sqlite():
        return {"check_same_thread": False}
    if Settings.is_postgres():
        # Bound every remote call: connection setup and each statement
        return {
            "connect_timeout": Settings.DB_CONNECT_TIMEOUT,
            "options": f"-c statement_timeout={Settings.DB_STATEMENT_TIMEOUT_MS}",
        }
    return {}


def _engine_kwargs() -> dict:
    if Settings.is_sqlite():
        return {}
    return {"pool_timeout": Settings.DB_POOL_TIMEOUT, "pool_pre_ping": True}


engine = create_engine(
    Settings.DATABASE_URL,
    connect_args=_connect_args(),
    **_engine_kwargs()
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

# Imported wherever a DB session is needed
def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
