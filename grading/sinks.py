import json
import os
import tempfile
import uuid
from pathlib import Path
from typing import Callable, Optional, Sequence

from loguru import logger
from sqlalchemy.orm import Session

from grading.models.results import GradingRecord
from grading.repositories.grading_repository import GradingRepository


class ResultsSink:
    """Receives the full, growing record list after every graded submission."""

    def save(self, records: Sequence[GradingRecord]) -> None:
        raise NotImplementedError


class JsonResultsSink(ResultsSink):
    """Rewrites a JSON snapshot of every record; the write is atomic."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def save(self, records: Sequence[GradingRecord]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [record.to_dict() for record in records]
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("results_snapshot_written", path=str(self.path), records=len(records))


class DatabaseResultsSink(ResultsSink):
    """Inserts records not yet stored; existing rows are never touched."""

    def __init__(self, session_factory: Callable[[], Session], run_id: Optional[str] = None):
        self.session_factory = session_factory
        self.run_id = run_id or uuid.uuid4().hex
        self._stored = 0

    def save(self, records: Sequence[GradingRecord]) -> None:
        pending = records[self._stored:]
        if not pending:
            return
        session = self.session_factory()
        try:
            repo = GradingRepository(session)
            for record in pending:
                repo.add_record(self.run_id, record)
                self._stored += 1
        finally:
            session.close()
