from __future__ import annotations
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from .settings import settings


DATABASE_URL = settings.database_url or "sqlite:///./math_coach.db"

Base = declarative_base()


def make_engine(url: str = DATABASE_URL) -> Engine:
	connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
	return create_engine(url, connect_args=connect_args, future=True)


# Created lazily so the default in-memory storage never touches a database file
engine: Engine | None = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False, future=True)


def init_engine(url: str = DATABASE_URL) -> Engine:
	global engine
	engine = make_engine(url)
	SessionLocal.configure(bind=engine)
	Base.metadata.create_all(bind=engine)
	return engine


def get_db():
	if engine is None:
		init_engine()
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()
