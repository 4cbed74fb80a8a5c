import httpx

from grading.batteries import APITestBattery
from grading.batteries.base import TestBattery
from grading.models.results import CheckOutcome, TestCase

from conftest import FakeRecipeServer

BASE_URL = "http://localhost:3000"


def run(server, **kwargs):
    battery = APITestBattery(client_factory=server.client_factory, **kwargs)
    return {result.name: result for result in battery.run_all(BASE_URL)}


def test_max_score_is_95():
    assert APITestBattery().max_score == 95


def test_correct_server_scores_everything(recipe_server):
    results = run(recipe_server)

    assert all(result.passed for result in results.values())
    assert sum(result.points for result in results.values()) == 95
    assert results["GET /api/recipes - list recipes"].points == 15


def test_empty_list_fails_only_list_case():
    server = FakeRecipeServer(recipes=0)
    results = run(server)

    assert results["GET /api/recipes - list recipes"].points == 0
    assert "empty" in results["GET /api/recipes - list recipes"].detail
    assert results["Data persistence"].passed


def test_missing_validation_scores_zero_on_validation_only():
    server = FakeRecipeServer(validate=False)
    results = run(server)

    validation = results["POST /api/recipes - reject invalid payloads"]
    assert validation.points == 0
    assert "empty name" in validation.detail
    assert results["POST /api/recipes - create valid recipe"].points == 20
    assert results["GET /api/recipes/:id - 404 on unknown id"].points == 10


def test_unknown_id_must_be_404():
    server = FakeRecipeServer(missing_status=200)
    results = run(server)

    assert not results["GET /api/recipes/:id - 404 on unknown id"].passed


def test_malformed_id_accepts_any_error_status():
    server = FakeRecipeServer(malformed_status=500)
    results = run(server)

    assert results["Error handling - malformed id"].passed


def test_cases_run_in_declared_order(recipe_server):
    battery = APITestBattery(client_factory=recipe_server.client_factory)

    names = [result.name for result in battery.run_all(BASE_URL)]

    assert names == [case.name for case in battery.cases]


def test_connection_refused_fails_every_case():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    from grading.http_client import ApiClient

    battery = APITestBattery(
        client_factory=lambda url, timeout: ApiClient(url, timeout=timeout, transport=httpx.MockTransport(handler))
    )
    results = battery.run_all(BASE_URL)

    assert all(result.points == 0 for result in results)
    assert all("cannot connect to server" in result.detail for result in results)


def test_exception_in_one_case_does_not_stop_the_rest(recipe_server):
    def explode(client):
        raise RuntimeError("boom")

    class MixedBattery(TestBattery):
        name = "mixed"
        cases = (
            TestCase("explodes", 10, explode),
            TestCase("passes", 5, lambda client: CheckOutcome(True, "ok")),
        )

    results = MixedBattery(client_factory=recipe_server.client_factory).run_all(BASE_URL)

    assert [r.passed for r in results] == [False, True]
    assert results[0].detail == "error: boom"
    assert results[1].points == 5


def test_pacing_sleeps_between_cases(recipe_server):
    sleeps = []
    battery = APITestBattery(client_factory=recipe_server.client_factory, pacing_seconds=0.5, sleep=sleeps.append)

    battery.run_all(BASE_URL)

    assert sleeps == [0.5] * (len(battery.cases) - 1)


def test_skipped_results_keep_weights():
    skipped = APITestBattery().skipped_results("not_run: server_not_ready")

    assert all(result.skipped and result.points == 0 for result in skipped)
    assert sum(result.max_points for result in skipped) == 95
