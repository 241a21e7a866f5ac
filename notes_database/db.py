import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from dotenv import load_dotenv

# Bound to an engine by configure_engine() at application startup.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)


# PUBLIC_INTERFACE
def get_database_url():
    """
    Retrieves the database URL from the environment variable DATABASE_URL.
    """
    load_dotenv()
    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        raise ValueError("DATABASE_URL environment variable not set.")
    return db_url


# PUBLIC_INTERFACE
def build_engine(db_url: str):
    """Creates an engine; SQLite URLs get the options needed by the threadpool."""
    kwargs = {"future": True, "echo": False}
    if db_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(db_url, **kwargs)


# PUBLIC_INTERFACE
def configure_engine(db_url: str = None):
    """Builds the engine for db_url (or DATABASE_URL) and binds SessionLocal to it."""
    engine = build_engine(db_url or get_database_url())
    SessionLocal.configure(bind=engine)
    return engine
