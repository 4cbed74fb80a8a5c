from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from config import config
from grading.models.database import Base

database_url = config.get_database_url()

# FastAPI opens sessions in a worker thread and uses them on the event loop
connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}

engine = create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    Base.metadata.create_all(bind=engine)


def get_session() -> Session:
    return SessionLocal()
