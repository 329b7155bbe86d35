from typing import Dict

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()

_ENGINE_CACHE: Dict[str, Engine] = {}
_SESSION_CACHE: Dict[str, sessionmaker] = {}


def get_engine(database_url: str) -> Engine:
    eng = _ENGINE_CACHE.get(database_url)
    if eng is None:
        kwargs = {}
        if database_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            # in-memory sqlite lives and dies with its connection; share one
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool
        eng = create_engine(database_url, **kwargs)
        _ENGINE_CACHE[database_url] = eng
    return eng


def get_session_local(database_url: str) -> sessionmaker:
    sess = _SESSION_CACHE.get(database_url)
    if sess is None:
        sess = sessionmaker(autocommit=False, autoflush=False, bind=get_engine(database_url))
        _SESSION_CACHE[database_url] = sess
    return sess


def init_db(database_url: str) -> None:
    # registers the tables on Base.metadata
    from exam_engine import models  # noqa: F401

    Base.metadata.create_all(bind=get_engine(database_url))
