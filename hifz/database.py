from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from hifz.config import settings

def make_engine(database_url: str, echo: bool = False):
    """Create an engine; SQLite connections may be shared across threads"""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, echo=echo, connect_args=connect_args)

engine = make_engine(settings.database_url, echo=settings.echo_sql)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

Base = declarative_base()

def init_db(bind=None):
    """Create all tables that don't exist yet"""
    # Register models on Base.metadata
    import hifz.models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)

def reset_db(bind=None):
    """Drop and recreate all tables (deletes every memorization item)"""
    import hifz.models  # noqa: F401
    target = bind or engine
    Base.metadata.drop_all(bind=target)
    Base.metadata.create_all(bind=target)
