from functools import lru_cache

from sqlmodel import create_engine, Session
import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./print_costing.db")
SQL_ECHO = os.getenv("SQL_ECHO", "0").lower() in ("1", "true", "yes")


@lru_cache(maxsize=None)
def get_engine(url: str = DATABASE_URL):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=SQL_ECHO, connect_args=connect_args)


def get_session(engine=None) -> Session:
    return Session(engine or get_engine())
