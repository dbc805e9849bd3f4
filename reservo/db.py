import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from .models import Base

# Если не задано, используем sqlite в файл local.db рядом с этим скриптом
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./local.db")

engine = create_engine(
    DATABASE_URL,
    # для SQLite
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
    pool_pre_ping=True,
)
SessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine
)

def init_db(bind=None):
    # Создаёт таблицы напрямую, без Alembic (тесты, локальные скрипты)
    Base.metadata.create_all(bind=bind or engine)
