import logging
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DB_PATH = os.getenv("SQLITE_DB_PATH", "./data/track2give.db")
os.makedirs(os.path.dirname(os.path.abspath(DB_PATH)), exist_ok=True)

engine = create_engine(f"sqlite:///{DB_PATH}", connect_args={"check_same_thread": False})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    from track2give.models import food  # noqa: F401
    reset = os.getenv("RESET_DB", "false").lower() == "true"
    if reset:
        logger.warning("RESET_DB is set, dropping all tables in %s", DB_PATH)
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
