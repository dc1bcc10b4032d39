from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import get_settings


def _database_url(settings):
    url = make_url(settings.database_url)
    if settings.database_password and not url.password:
        url = url.set(password=settings.database_password)
    return url


def _connect_args(url):
    if url.get_backend_name() == "sqlite":
        return {"check_same_thread": False}
    return {}


settings = get_settings()
SQLALCHEMY_DATABASE_URL = _database_url(settings)

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args=_connect_args(SQLALCHEMY_DATABASE_URL),
    pool_pre_ping=True,
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
