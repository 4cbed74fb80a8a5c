"""
Recipe REST API acceptance battery.

Cases run in this order (weights in parentheses):

    list recipes (15), get recipe by id (15), 404 on unknown id (10),
    create valid recipe (20), reject invalid payloads (15),
    created data visible in list (10), malformed id rejected (10)
"""
from typing import Any, Dict, Tuple

from grading.batteries.base import TestBattery, expect_response
from grading.http_client import ApiClient
from grading.models.results import CheckOutcome, TestCase

RECIPES_PATH = "/api/recipes"
KNOWN_RECIPE_ID = 1
UNKNOWN_RECIPE_ID = 99999
MALFORMED_RECIPE_ID = "abc"

VALID_RECIPE: Dict[str, Any] = {
    "name": "Grader Test Recipe",
    "cuisine": "Test",
    "difficulty": "Facile",
    "prepTime": 15,
    "servings": 2,
    "ingredients": ["Ingredient 1", "Ingredient 2"],
    "instructions": "Grader test instructions",
}

PERSISTENCE_RECIPE: Dict[str, Any] = {
    **VALID_RECIPE,
    "name": "Grader Persistence Check",
    "servings": 1,
    "ingredients": ["Test"],
}

INVALID_RECIPES: Tuple[Tuple[str, Dict[str, Any]], ...] = (
    ("empty name", {**VALID_RECIPE, "name": ""}),
    ("empty ingredients", {**VALID_RECIPE, "name": "Test Recipe", "ingredients": []}),
    ("negative prepTime", {**VALID_RECIPE, "name": "Test Recipe", "prepTime": -5}),
)


def _recipe_list(client: ApiClient):
    response = expect_response(client.get(RECIPES_PATH))
    if response.status != 200:
        return response, None
    return response, response.body if isinstance(response.body, list) else None


def check_list_recipes(client: ApiClient) -> CheckOutcome:
    response, recipes = _recipe_list(client)
    if response.status != 200:
        return CheckOutcome(False, f"expected 200, got {response.status}")
    if recipes is None:
        return CheckOutcome(False, "response body is not an array")
    if not recipes:
        return CheckOutcome(False, "recipe list is empty")
    return CheckOutcome(True, f"{len(recipes)} recipes returned")


def check_get_recipe_by_id(client: ApiClient) -> CheckOutcome:
    response = expect_response(client.get(f"{RECIPES_PATH}/{KNOWN_RECIPE_ID}"))
    if response.status != 200:
        return CheckOutcome(False, f"expected 200, got {response.status}")
    recipe = response.body
    if not isinstance(recipe, dict):
        return CheckOutcome(False, "response body is not an object")
    if str(recipe.get("id")) != str(KNOWN_RECIPE_ID) or not recipe.get("name"):
        return CheckOutcome(False, "recipe is missing id or name")
    return CheckOutcome(True, f"recipe \"{recipe['name']}\" returned")


def check_unknown_id_returns_404(client: ApiClient) -> CheckOutcome:
    response = expect_response(client.get(f"{RECIPES_PATH}/{UNKNOWN_RECIPE_ID}"))
    if response.status == 404:
        return CheckOutcome(True, "404 returned for unknown id")
    return CheckOutcome(False, f"expected 404 for unknown id, got {response.status}")


def check_create_valid_recipe(client: ApiClient) -> CheckOutcome:
    response = expect_response(client.post(RECIPES_PATH, VALID_RECIPE))
    if response.status not in (200, 201):
        return CheckOutcome(False, f"expected 200 or 201, got {response.status}")
    created = response.body
    if not isinstance(created, dict) or created.get("id") in (None, ""):
        return CheckOutcome(False, "created recipe has no id")
    if created.get("name") != VALID_RECIPE["name"]:
        return CheckOutcome(False, "created recipe does not echo the submitted name")
    return CheckOutcome(True, f"recipe created with id {created['id']}")


def check_rejects_invalid_recipes(client: ApiClient) -> CheckOutcome:
    for label, payload in INVALID_RECIPES:
        response = expect_response(client.post(RECIPES_PATH, payload))
        if response.status != 400:
            return CheckOutcome(False, f"{label}: expected 400, got {response.status}")
    return CheckOutcome(True, "empty name, empty ingredients and negative prepTime rejected")


def check_created_recipe_persists(client: ApiClient) -> CheckOutcome:
    before_response, before = _recipe_list(client)
    if before is None:
        return CheckOutcome(False, f"cannot list recipes (HTTP {before_response.status})")

    expect_response(client.post(RECIPES_PATH, PERSISTENCE_RECIPE))

    after_response, after = _recipe_list(client)
    if after is None:
        return CheckOutcome(False, f"cannot list recipes after create (HTTP {after_response.status})")
    if len(after) != len(before) + 1:
        return CheckOutcome(False, f"recipe count before={len(before)}, after={len(after)}")
    return CheckOutcome(True, "created recipe visible in list")


def check_malformed_id_rejected(client: ApiClient) -> CheckOutcome:
    response = expect_response(client.get(f"{RECIPES_PATH}/{MALFORMED_RECIPE_ID}"))
    if response.status >= 400:
        return CheckOutcome(True, f"malformed id answered with {response.status}")
    return CheckOutcome(False, f"malformed id answered with {response.status}")


RECIPE_API_CASES: Tuple[TestCase, ...] = (
    TestCase("GET /api/recipes - list recipes", 15, check_list_recipes),
    TestCase("GET /api/recipes/:id - get recipe by id", 15, check_get_recipe_by_id),
    TestCase("GET /api/recipes/:id - 404 on unknown id", 10, check_unknown_id_returns_404),
    TestCase("POST /api/recipes - create valid recipe", 20, check_create_valid_recipe),
    TestCase("POST /api/recipes - reject invalid payloads", 15, check_rejects_invalid_recipes),
    TestCase("Data persistence", 10, check_created_recipe_persists),
    TestCase("Error handling - malformed id", 10, check_malformed_id_rejected),
)


class APITestBattery(TestBattery):
    name = "api"
    cases = RECIPE_API_CASES
