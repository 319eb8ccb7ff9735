"""Shared test helpers: fixture loading and a recording mock cluster."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx

TESTS_DIR = Path(__file__).parent
FIXTURES_DIR = TESTS_DIR / "fixtures"


def load_fixture(name: str) -> Any:
    with open(FIXTURES_DIR / name) as f:
        return json.load(f)


def already_exists_body(index: str) -> Dict[str, Any]:
    """Error document Elasticsearch returns when creating an existing index."""
    return {
        "error": {
            "root_cause": [
                {
                    "type": "resource_already_exists_exception",
                    "reason": f"index [{index}] already exists",
                }
            ],
            "type": "resource_already_exists_exception",
            "reason": f"index [{index}] already exists",
        },
        "status": 400,
    }


class RecordingTransport(httpx.MockTransport):
    """Mock cluster that records every request and answers per URL."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self._responses: Dict[str, Tuple[int, Any]] = {}
        self._errors: Dict[str, Exception] = {}
        super().__init__(self._handle)

    def respond(self, url: str, status_code: int, body: Any = None) -> None:
        self._responses[url] = (status_code, body)

    def fail(self, url: str, error: Exception) -> None:
        self._errors[url] = error

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url in self._errors:
            raise self._errors[url]
        status_code, body = self._responses.get(url, (200, {"acknowledged": True}))
        return httpx.Response(status_code, json=body)

    @property
    def urls(self) -> List[str]:
        return [str(request.url) for request in self.requests]

    def request_for(self, url: str) -> Optional[httpx.Request]:
        for request in self.requests:
            if str(request.url) == url:
                return request
        return None

    def body_for(self, url: str) -> Any:
        request = self.request_for(url)
        return json.loads(request.content) if request is not None else None
