import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from grading.api.dependencies import get_db
from grading.api.main import app
from grading.models.database import Base
from grading.repositories import GradingRepository

from helpers import make_record


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def stored(session_factory):
    session = session_factory()
    repo = GradingRepository(session)
    repo.add_record("old-run", make_record("old", points=(0, 0, 0), server_started=False))
    perfect = repo.add_record("run-1", make_record("a", points=(5, 15, 10)))
    repo.add_record("run-1", make_record("b", points=(5, 0, 0)))
    ids = {"perfect": perfect.id}
    session.close()
    return ids


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_list_results_filtered_by_run(client, stored):
    response = client.get("/api/v1/results", params={"run_id": "run-1"})

    body = response.json()
    assert response.status_code == 200
    assert body["total"] == 2
    assert {record["submission_id"] for record in body["records"]} == {"a", "b"}
    assert "tests" not in body["records"][0]


def test_get_result_detail(client, stored):
    response = client.get(f"/api/v1/results/{stored['perfect']}")

    body = response.json()
    assert response.status_code == 200
    assert body["total_score"] == 30
    assert body["grade"] == "A"
    assert [test["name"] for test in body["tests"]] == ["case 0", "case 1", "case 2"]


def test_get_result_not_found(client):
    response = client.get("/api/v1/results/9999")

    assert response.status_code == 404
    assert response.json()["detail"].startswith("record_not_found")


def test_stats_default_to_latest_run(client, stored):
    response = client.get("/api/v1/stats")

    body = response.json()
    assert body["run_id"] == "run-1"
    assert body["total_submissions"] == 2
    assert body["perfect_scores"] == 1
    assert body["highest_score"] == 30
    assert body["lowest_score"] == 5


def test_stats_empty_database(client):
    body = client.get("/api/v1/stats").json()

    assert body["run_id"] is None
    assert body["total_submissions"] == 0


def test_lifespan_creates_tables(monkeypatch, session_factory):
    calls = []
    monkeypatch.setattr("grading.api.main.init_db", lambda: calls.append(True))

    with TestClient(app) as client:
        assert client.get("/health").status_code == 200

    assert calls == [True]
