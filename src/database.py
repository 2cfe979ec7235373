import os
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool
from dotenv import load_dotenv
from asyncpg import Connection
from uuid import uuid4
from sqlalchemy import (
    Boolean, Column, ForeignKey, Integer, String,
    JSON, DateTime,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, relationship

load_dotenv()

POSTGRES_USER = os.getenv("POSTGRES_USER")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD")
POSTGRES_DB = os.getenv("POSTGRES_DB_URL")

LEAGUE_SLOTS = int(os.getenv("LEAGUE_SLOTS", "3"))

class Base(DeclarativeBase): pass

postgres_file_name = f"{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_DB}"

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{postgres_file_name}"
    )

class FixedConnection(Connection):
    def _get_unique_id(self, prefix: str) -> str:
        return f'__asyncpg_{prefix}_{uuid4()}__'


def _engine_options(url: str) -> dict:
    if url.startswith("postgresql+asyncpg"):
        return {
            "connect_args": {
                "statement_cache_size": 0,
                "prepared_statement_cache_size": 0,
                "connection_class": FixedConnection,
            }
        }
    # sqlite connections must not outlive the event loop that opened them
    return {"poolclass": NullPool}


engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    **_engine_options(DATABASE_URL),
)

# Session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


async def get_session():
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_models():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


JsonType = JSON().with_variant(JSONB(), "postgresql")


def utcnow():
    return datetime.now(timezone.utc)

#ORM

class LeagueORM(Base):
    __tablename__ = "leagues"

    id             = Column(String, primary_key=True)
    slot           = Column(Integer, nullable=False, unique=True)
    name           = Column(String, nullable=False)
    end_date       = Column(String, nullable=True)
    finished_dates = Column(JsonType, nullable=False, default=list)  # dates with MVP awarded
    created_at     = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    players = relationship(
        "PlayerORM",
        back_populates="league",
        cascade="all, delete-orphan",
        order_by="PlayerORM.position",
        lazy="selectin",
    )
    matches = relationship(
        "MatchORM",
        back_populates="league",
        cascade="all, delete-orphan",
        order_by="MatchORM.position",
        lazy="selectin",
    )


class PlayerORM(Base):
    __tablename__ = "players"

    id            = Column(String, primary_key=True)
    league_id     = Column(String, ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False)
    position      = Column(Integer, nullable=False, default=0)
    name          = Column(String, nullable=False)
    gender        = Column(String, nullable=False, default="MALE")  # MALE | FEMALE
    bonus_points  = Column(Integer, nullable=False, default=0)

    league = relationship("LeagueORM", back_populates="players")


class MatchORM(Base):
    __tablename__ = "matches"

    id            = Column(String, primary_key=True)
    league_id     = Column(String, ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False)
    position      = Column(Integer, nullable=False)
    date          = Column(String, nullable=False)  # YYYY-MM-DD
    team_a        = Column(JsonType, nullable=False)  # {"id", "kind", "players": [...]}
    team_b        = Column(JsonType, nullable=False)
    score_a       = Column(Integer, nullable=False, default=0)
    score_b       = Column(Integer, nullable=False, default=0)
    is_finished   = Column(Boolean, nullable=False, default=False)

    league = relationship("LeagueORM", back_populates="matches")
