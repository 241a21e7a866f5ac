"""
Database initialization/migration script.

Run this script to create all required tables in the database.
"""
from notes_database.db import configure_engine
from notes_database.models import Base


# PUBLIC_INTERFACE
def init_db(engine=None):
    """Initializes the database by creating all tables if they do not exist."""
    if engine is None:
        engine = configure_engine()
    Base.metadata.create_all(bind=engine)
    return engine


if __name__ == "__main__":
    init_db()
    print("Database tables created successfully.")
