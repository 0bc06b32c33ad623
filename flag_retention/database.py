import os

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

# Load .env file (DATABASE_URL lives there)
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL environment variable is not set")

# Hosted Postgres provides postgresql:// but SQLAlchemy needs postgresql+psycopg2://
if DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+psycopg2://", 1)

# SQLite connections are shared with the threadpool FastAPI runs sync routes in
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

# SQLAlchemy engine & session factory
engine = create_engine(
    DATABASE_URL,
    future=True,
    echo=False,  # set True if you want to see SQL in terminal
    connect_args=_connect_args,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)

Base = declarative_base()


def get_db():
    """
    FastAPI dependency that gives you a DB session and cleans it up after.
    """
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
