from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.pool import StaticPool

from .core.config import settings

# Choose engine options based on database scheme
db_url = settings.DATABASE_URL
engine_kwargs = {}

if db_url.startswith("sqlite"):
    engine_kwargs.update({
        "connect_args": {"check_same_thread": False}
    })
    if db_url in ("sqlite://", "sqlite:///:memory:"):
        # In-memory databases must share one connection across threads
        engine_kwargs["poolclass"] = StaticPool
else:
    engine_kwargs.update({
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "pool_size": 5,
        "max_overflow": 10,
    })

engine = create_engine(db_url, echo=settings.DEBUG, **engine_kwargs)

def create_db_and_tables(bind=None):
    # Import table models so they register on SQLModel.metadata
    from .db import models  # noqa: F401
    SQLModel.metadata.create_all(bind or engine)

def get_session():
    with Session(engine) as session:
        yield session
