from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base, Session
from ..config import get_settings

settings = get_settings()

DATABASE_URL = settings.sqlalchemy_url

# sqlite is only used for local runs; the request threadpool shares connections
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    future=True,
    echo=False,
    pool_pre_ping=True,
    connect_args=connect_args,
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
Base = declarative_base()


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
