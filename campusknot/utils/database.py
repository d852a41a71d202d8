"""Database connection utilities and schema for CampusKnot."""

import json
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.types import TypeDecorator

from campusknot.utils.errors import DatabaseError
from campusknot.utils.logging import get_logger

logger = get_logger(__name__)


def utcnow() -> datetime:
    """Get current UTC time (naive)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class JSONList(TypeDecorator):
    """A list of strings stored as JSON text.

    Malformed or non-list stored values load as an empty list.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Optional[List[str]], dialect: Any) -> str:
        return json.dumps([str(item) for item in (value or [])])

    def process_result_value(self, value: Optional[str], dialect: Any) -> List[str]:
        if not value:
            return []
        try:
            decoded = json.loads(value)
        except (TypeError, ValueError):
            logger.warning("Malformed list column value, using empty list", value=value[:100])
            return []
        if not isinstance(decoded, list):
            return []
        return [str(item) for item in decoded]


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


class UserDB(Base):
    """User database model."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255), unique=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    age: Mapped[int] = mapped_column(Integer)
    gender: Mapped[str] = mapped_column(String(20))
    branch: Mapped[str] = mapped_column(String(100))
    year: Mapped[str] = mapped_column(String(50))
    bio: Mapped[str] = mapped_column(Text, default="")
    photo: Mapped[str] = mapped_column(String(500), default="")
    show_me: Mapped[str] = mapped_column(String(20), default="all")
    interests: Mapped[List[str]] = mapped_column(JSONList, default=list)
    green_flags: Mapped[List[str]] = mapped_column(JSONList, default=list)
    red_flags: Mapped[List[str]] = mapped_column(JSONList, default=list)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (Index("idx_users_is_active", "is_active"),)


class SwipeDB(Base):
    """Swipe database model. One row per (actor, target)."""

    __tablename__ = "swipes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"))
    target_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"))
    action: Mapped[str] = mapped_column(String(10))
    is_super_like: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "target_id", name="uq_swipes_user_target"),
        CheckConstraint("action IN ('like', 'pass')", name="ck_swipes_action"),
        Index("idx_swipes_user", "user_id"),
        Index("idx_swipes_target", "target_id"),
    )


class MatchDB(Base):
    """Match database model. user1_id is always the lower id of the pair."""

    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user1_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"))
    user2_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("user1_id", "user2_id", name="uq_matches_pair"),
        CheckConstraint("user1_id < user2_id", name="ck_matches_canonical_order"),
        Index("idx_matches_user1", "user1_id"),
        Index("idx_matches_user2", "user2_id"),
    )

    def has_member(self, user_id: int) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def other_member(self, user_id: int) -> int:
        return self.user2_id if self.user1_id == user_id else self.user1_id


class MessageDB(Base):
    """Message database model."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    match_id: Mapped[int] = mapped_column(Integer, ForeignKey("matches.id", ondelete="CASCADE"))
    sender_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"))
    text: Mapped[str] = mapped_column(Text, default="")
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    voice_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    reply_to_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("messages.id", ondelete="SET NULL"), nullable=True
    )
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (Index("idx_messages_match", "match_id"),)


class ReportDB(Base):
    """Report database model (append-only)."""

    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    reporter_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"))
    reported_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"))
    reason: Mapped[str] = mapped_column(String(100))
    details: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite ignores foreign keys unless asked per connection."""

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection: Any, connection_record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class Database:
    """Singleton database connection manager."""

    _engine: Optional[Engine] = None
    _session_factory: Optional[sessionmaker] = None

    @classmethod
    def get_engine(cls) -> Engine:
        """Get or create the database engine."""
        if cls._engine is None:
            from campusknot.config import get_settings

            settings = get_settings()
            database_url = settings.DATABASE_URL

            if not database_url:
                raise DatabaseError("DATABASE_URL is not configured")

            # SQLAlchemy 1.4+ requires postgresql:// instead of postgres://
            if database_url.startswith("postgres://"):
                database_url = database_url.replace("postgres://", "postgresql://", 1)

            try:
                if database_url.startswith("sqlite"):
                    engine = create_engine(
                        database_url, connect_args={"check_same_thread": False}, echo=settings.DEBUG
                    )
                else:
                    engine = create_engine(database_url, pool_recycle=300, pool_pre_ping=True, echo=settings.DEBUG)
            except Exception as e:
                safe_url = database_url
                if "@" in safe_url:
                    part1, part2 = safe_url.rsplit("@", 1)
                    if ":" in part1:
                        scheme_user, _ = part1.rsplit(":", 1)
                        safe_url = f"{scheme_user}:***@{part2}"

                logger.error("Failed to create database engine", error=str(e), url=safe_url)
                raise DatabaseError("Failed to connect to database", details={"error": str(e), "url": safe_url}) from e

            cls.use_engine(engine)
            logger.info("Database engine created")
        return cls._engine  # type: ignore[return-value]

    @classmethod
    def use_engine(cls, engine: Engine) -> None:
        """Install an engine (and a fresh session factory) for all later sessions."""
        if engine.dialect.name == "sqlite":
            _enable_sqlite_foreign_keys(engine)
        cls._engine = engine
        cls._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def get_session_factory(cls) -> sessionmaker:
        """Get or create the session factory."""
        if cls._session_factory is None:
            cls.get_engine()
        return cls._session_factory  # type: ignore[return-value]

    @classmethod
    def get_session(cls) -> Session:
        """Get a new database session."""
        return cls.get_session_factory()()

    @classmethod
    def create_tables(cls) -> None:
        """Create all database tables."""
        engine = cls.get_engine()
        Base.metadata.create_all(engine)
        logger.info("Database tables created")

    @classmethod
    def dispose(cls) -> None:
        """Release pooled connections and forget the engine."""
        if cls._engine is not None:
            cls._engine.dispose()
        cls._engine = None
        cls._session_factory = None


def get_session() -> Session:
    """Get a database session."""
    return Database.get_session()


def init_database() -> None:
    """Initialize the database and create tables."""
    Database.create_tables()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Provide a session that is rolled back on error and always closed."""
    session = get_session()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
