from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from prismstudio.config import get_settings

settings = get_settings()

engine = create_engine(settings.database_url, pool_pre_ping=True)

sessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db() -> Generator[Session, None, None]:
    """
    Yield a database session for the duration of one request
    """
    db = sessionLocal()
    try:
        yield db
    finally:
        db.close()
