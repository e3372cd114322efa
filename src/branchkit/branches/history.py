"""Persistent branch-creation history and branch config blob.

History rows are only ever inserted and read. The config blob is a single
JSON document keyed by ``DEFAULT_CONFIG_KEY``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import DateTime, Engine, Index, Integer, String, Text, create_engine, event, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from branchkit.branches.models import BranchPattern
from branchkit.errors import BranchkitError

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50
DEFAULT_CONFIG_KEY = "default"


class HistoryStoreError(BranchkitError):
    """Branch history storage failed."""

    pass


class Base(DeclarativeBase):
    """Base class for branchkit ORM models."""

    pass


class BranchHistoryRow(Base):
    """One branch created by branchkit."""

    __tablename__ = "branch_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    branch_name: Mapped[str] = mapped_column(Text, nullable=False)
    pattern_json: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    workspace_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    feature_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    username: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    machine_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_branch_history_created_at", "created_at"),
        Index("idx_branch_history_workspace", "workspace_name"),
    )


class BranchConfigRow(Base):
    """Serialized branch configuration."""

    __tablename__ = "branch_configs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    config_key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    config_json: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


@dataclass
class HistoryRecord:
    """A raw history row; the pattern is still serialized."""

    branch_name: str
    pattern_json: str
    created_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_storage(value: datetime) -> datetime:
    """SQLite keeps no offset, so timestamps are stored as naive UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _from_storage(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def create_history_engine(db_path: str | Path = ":memory:") -> Engine:
    """Create a SQLite engine for the history store.

    An in-memory database is shared by all threads through a single
    connection. File databases get WAL and a busy timeout.
    """
    if str(db_path) == ":memory:":
        return create_engine(
            "sqlite://",
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    path = Path(db_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite:///{path}", echo=False)

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):  # type: ignore[no-untyped-def]
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def init_db(engine: Engine) -> None:
    """Create all tables if they do not exist."""
    Base.metadata.create_all(engine)


class BranchHistoryStore:
    """Append-only branch history plus the branch config blob."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory: sessionmaker[Session] = sessionmaker(
            bind=engine, expire_on_commit=False
        )

    @classmethod
    def open(cls, db_path: str | Path = ":memory:") -> BranchHistoryStore:
        """Create the engine, the tables, and a store on top of them."""
        engine = create_history_engine(db_path)
        try:
            init_db(engine)
        except SQLAlchemyError as e:
            raise HistoryStoreError(f"Failed to initialize history database: {e}") from e
        logger.debug(f"Opened branch history store at {db_path}")
        return cls(engine)

    def close(self) -> None:
        self.engine.dispose()

    def append(
        self, branch_name: str, pattern: BranchPattern, created_at: datetime | None = None
    ) -> None:
        """Record one branch creation in its own transaction."""
        row = BranchHistoryRow(
            branch_name=branch_name,
            pattern_json=pattern.to_json(),
            created_at=_to_storage(created_at or _utcnow()),
            workspace_name=pattern.workspace,
            feature_type=pattern.feature_type.value,
            username=pattern.username,
            machine_name=pattern.machine,
        )
        try:
            with self._session_factory() as session, session.begin():
                session.add(row)
        except SQLAlchemyError as e:
            raise HistoryStoreError(f"Failed to save branch creation: {e}") from e
        logger.debug(f"Recorded branch creation: {branch_name}")

    def recent(
        self, limit: int = DEFAULT_HISTORY_LIMIT, workspace: str | None = None
    ) -> list[HistoryRecord]:
        """Return up to ``limit`` records, newest first."""
        stmt = select(BranchHistoryRow).order_by(
            BranchHistoryRow.created_at.desc(), BranchHistoryRow.id.desc()
        )
        if workspace is not None:
            stmt = stmt.where(BranchHistoryRow.workspace_name == workspace)
        stmt = stmt.limit(limit)

        try:
            with self._session_factory() as session:
                rows = session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            raise HistoryStoreError(f"Failed to get branch history: {e}") from e

        return [
            HistoryRecord(
                branch_name=row.branch_name,
                pattern_json=row.pattern_json,
                created_at=_from_storage(row.created_at),
            )
            for row in rows
        ]

    def load_config_blob(self, key: str = DEFAULT_CONFIG_KEY) -> str | None:
        stmt = select(BranchConfigRow.config_json).where(BranchConfigRow.config_key == key)
        try:
            with self._session_factory() as session:
                return session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise HistoryStoreError(f"Failed to load branch config: {e}") from e

    def save_config_blob(self, config_json: str, key: str = DEFAULT_CONFIG_KEY) -> None:
        now = _to_storage(_utcnow())
        try:
            with self._session_factory() as session, session.begin():
                row = session.execute(
                    select(BranchConfigRow).where(BranchConfigRow.config_key == key)
                ).scalar_one_or_none()
                if row is None:
                    session.add(
                        BranchConfigRow(
                            config_key=key,
                            config_json=config_json,
                            created_at=now,
                            updated_at=now,
                        )
                    )
                else:
                    row.config_json = config_json
                    row.updated_at = now
        except SQLAlchemyError as e:
            raise HistoryStoreError(f"Failed to save branch config: {e}") from e
        logger.debug(f"Saved branch config '{key}'")
