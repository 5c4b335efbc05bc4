from sqlmodel import SQLModel, create_engine, Session
from storefront.core.config import settings
from storefront.core.logger import get_logger

logger = get_logger("db")


def make_engine(url: str = settings.DATABASE_URL, **kwargs):
    # SQLite connections are shared across FastAPI's worker threads
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, echo=settings.SQL_ECHO, **kwargs)


engine = make_engine()


def get_session():
    with Session(engine) as session:
        yield session


def create_db_and_tables(bind=engine):
    SQLModel.metadata.create_all(bind)
    logger.info("Database ready: %s", ", ".join(sorted(SQLModel.metadata.tables)))
