import re
from typing import List, Optional, Tuple
from urllib.parse import urljoin, urlsplit

from grading.batteries.base import TestBattery, expect_response
from grading.http_client import ApiClient, HttpResponse
from grading.models.results import CheckOutcome, TestCase, TestResult

SCRIPT_SRC_PATTERN = re.compile(r"<script[^>]+src=[\"']([^\"']+)[\"']", re.IGNORECASE)
RECIPES_API_MARKER = "/api/recipes"


def _origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


class UITestBattery(TestBattery):
    """
    Frontend checks that need no browser.

    The page is fetched from ``frontend_url``; the backend under test is the
    ``base_url`` passed to ``run_all``. DOM-level interaction is not covered.
    """
    name = "ui"

    def __init__(self, frontend_url: str, **kwargs):
        super().__init__(**kwargs)
        self.frontend_url = frontend_url.rstrip("/")
        self._backend_url = ""
        self.cases: Tuple[TestCase, ...] = (
            TestCase("Frontend - page loads", 10, self.check_page_loads),
            TestCase("Frontend - page calls recipes API", 10, self.check_api_wiring),
            TestCase("Frontend - backend allows page origin (CORS)", 5, self.check_cors),
        )

    def target_url(self, base_url: str) -> str:
        return self.frontend_url

    def run_all(self, base_url: str, client: Optional[ApiClient] = None) -> List[TestResult]:
        self._backend_url = base_url.rstrip("/")
        return super().run_all(base_url, client)

    def _page(self, client: ApiClient) -> HttpResponse:
        return expect_response(client.get("/"))

    def check_page_loads(self, client: ApiClient) -> CheckOutcome:
        page = self._page(client)
        if page.status != 200:
            return CheckOutcome(False, f"expected 200, got {page.status}")
        if "<html" not in page.text.lower():
            return CheckOutcome(False, "response is not an HTML page")
        return CheckOutcome(True, "page served")

    def check_api_wiring(self, client: ApiClient) -> CheckOutcome:
        page = self._page(client)
        if RECIPES_API_MARKER in page.text:
            return CheckOutcome(True, "inline script references the recipes API")
        for src in SCRIPT_SRC_PATTERN.findall(page.text):
            script_url = urljoin(f"{self.frontend_url}/", src)
            if _origin(script_url) != _origin(self.frontend_url):
                continue
            script = expect_response(client.get(urlsplit(script_url).path))
            if script.status == 200 and RECIPES_API_MARKER in script.text:
                return CheckOutcome(True, f"{src} references the recipes API")
        return CheckOutcome(False, "no page script references /api/recipes")

    def check_cors(self, client: ApiClient) -> CheckOutcome:
        origin = _origin(self.frontend_url)
        with self._client_factory(self._backend_url, self.request_timeout) as backend:
            response = expect_response(backend.get(RECIPES_API_MARKER, headers={"Origin": origin}))
        allowed = response.headers.get("access-control-allow-origin")
        if allowed in ("*", origin):
            return CheckOutcome(True, f"Access-Control-Allow-Origin: {allowed}")
        return CheckOutcome(False, f"missing CORS header for {origin}")
