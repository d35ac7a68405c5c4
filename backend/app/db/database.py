"""
Database connection and session management.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
import os
from dotenv import load_dotenv

load_dotenv()

# Get settings from environment
database_url = os.getenv("DATABASE_URL", "sqlite:///./shipments.db")
sql_echo = os.getenv("SQL_ECHO", "false").strip().lower() in ("1", "true", "yes")
cors_origins = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]

class Settings:
    database_url = database_url
    sql_echo = sql_echo
    cors_origins = cors_origins

settings = Settings()

# SQLite connections are shared between the event loop and the threadpool
connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, echo=settings.sql_echo, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
