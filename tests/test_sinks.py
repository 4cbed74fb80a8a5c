import json

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from grading.models.database import Base, GradingRecordModel
from grading.repositories import GradingRepository
from grading.sinks import DatabaseResultsSink, JsonResultsSink

from helpers import make_record


@pytest.fixture
def session_factory():
    # StaticPool keeps the in-memory database alive across sessions
    engine = create_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


def test_json_snapshot_is_rewritten(tmp_path):
    path = tmp_path / "results" / "grading_results.json"
    sink = JsonResultsSink(path)

    sink.save([make_record("a")])
    sink.save([make_record("a"), make_record("b")])

    data = json.loads(path.read_text(encoding="utf-8"))
    assert [entry["submission"]["id"] for entry in data] == ["a", "b"]
    assert data[0]["tests"][0] == {
        "name": "case 0",
        "passed": True,
        "points": 5,
        "max_points": 5,
        "detail": "",
        "skipped": False,
    }
    assert [p.name for p in path.parent.iterdir()] == ["grading_results.json"]


def test_database_sink_appends_only_new_records(session_factory):
    sink = DatabaseResultsSink(session_factory, run_id="run-1")

    sink.save([make_record("a")])
    sink.save([make_record("a"), make_record("b")])
    sink.save([make_record("a"), make_record("b")])

    session = session_factory()
    rows = session.query(GradingRecordModel).order_by(GradingRecordModel.id).all()
    assert [row.submission_id for row in rows] == ["a", "b"]
    assert all(row.run_id == "run-1" for row in rows)
    assert [test.name for test in rows[0].tests] == ["case 0", "case 1", "case 2"]
    session.close()


def test_repository_round_trip(session_factory):
    session = session_factory()
    repo = GradingRepository(session)
    original = make_record("z", errors=["readiness_timeout"], server_started=False, points=(0, 0, 0))

    row = repo.add_record("run-2", original)
    restored = repo.to_record(repo.get_by_id(row.id))

    assert restored.submission.id == "z"
    assert restored.errors == ["readiness_timeout"]
    assert restored.tests == original.tests
    assert restored.total_score == 0
    assert repo.get_latest_run_id() == "run-2"
    assert repo.count_records("run-2") == 1
    assert repo.count_records("missing") == 0
    session.close()
