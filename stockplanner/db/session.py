from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from stockplanner.config import get_settings

settings = get_settings()

engine = create_engine(settings.database_url, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """One session per request, closed on every exit path."""
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
