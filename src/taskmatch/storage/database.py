"""Engine and session ownership shared by the aggregate repositories."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from taskmatch.errors import StoreUnavailableError
from taskmatch.storage.alembic_runner import upgrade_head
from taskmatch.storage.common import build_sqlite_engine

logger = logging.getLogger(__name__)


class Database:
    """SQLite database handle used by Skill, Developer and Task repositories."""

    def __init__(self, db_path: Path, *, busy_timeout_ms: int = 5_000) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=busy_timeout_ms)

    def init_schema(self) -> None:
        """Run schema migrations up to head."""

        upgrade_head(self.db_path)

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Open a session; driver-level failures surface as ``StoreUnavailableError``."""

        try:
            with Session(self.engine) as session:
                yield session
        except OperationalError as error:
            logger.error("Entity store operation failed (db_path=%s): %s", self.db_path, error)
            raise StoreUnavailableError("Entity store is unavailable.") from error
