import json
import re
import socket
from pathlib import Path

import httpx
import pytest

from grading.http_client import ApiClient


class FakeRecipeServer:
    """In-memory recipe backend driven through httpx.MockTransport."""

    def __init__(self, recipes=5, validate=True, missing_status=404, malformed_status=400):
        self.recipes = [
            {"id": i, "name": f"Recipe {i}", "ingredients": ["salt"], "prepTime": 10}
            for i in range(1, recipes + 1)
        ]
        self.validate = validate
        self.missing_status = missing_status
        self.malformed_status = malformed_status
        self.requests = []

    def _is_invalid(self, payload):
        if not payload.get("name"):
            return True
        if not payload.get("ingredients"):
            return True
        prep_time = payload.get("prepTime")
        return isinstance(prep_time, (int, float)) and prep_time < 0

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        path = request.url.path
        if path == "/api/recipes" and request.method == "GET":
            return httpx.Response(200, json=self.recipes)
        if path == "/api/recipes" and request.method == "POST":
            payload = json.loads(request.content or b"{}")
            if self.validate and self._is_invalid(payload):
                return httpx.Response(400, json={"error": "invalid recipe"})
            recipe = {**payload, "id": len(self.recipes) + 1}
            self.recipes.append(recipe)
            return httpx.Response(201, json=recipe)

        match = re.fullmatch(r"/api/recipes/([^/]+)", path)
        if match and request.method == "GET":
            raw_id = match.group(1)
            if not raw_id.isdigit():
                return httpx.Response(self.malformed_status, json={"error": "bad id"})
            for recipe in self.recipes:
                if recipe["id"] == int(raw_id):
                    return httpx.Response(200, json=recipe)
            return httpx.Response(self.missing_status, json={"error": "not found"})
        return httpx.Response(404, text="Not Found")

    def client_factory(self, base_url: str, timeout: float) -> ApiClient:
        return ApiClient(base_url, timeout=timeout, transport=httpx.MockTransport(self.handle))


@pytest.fixture
def recipe_server():
    return FakeRecipeServer()


@pytest.fixture
def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def make_submission_dir(tmp_path):
    """Create a submission tree with ``backend/`` and the given files."""

    def _make(name="student", files=None, manifest=None, server_dir="backend") -> Path:
        root = tmp_path / name
        backend = root / server_dir
        backend.mkdir(parents=True)
        if manifest is not None:
            (backend / "package.json").write_text(json.dumps(manifest), encoding="utf-8")
        for relative, content in (files or {}).items():
            target = backend / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return root

    return _make
