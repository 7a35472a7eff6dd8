"""
In-process stand-in for the public slicer-profile bucket, served through
httpx.MockTransport.
"""
from typing import Any, Dict, List
from urllib.parse import unquote

import httpx

PROFILE_ROOT = "https://profiles.test/slicer-profiles/"


class CatalogServer:
    """
    routes: path relative to PROFILE_ROOT -> JSON-serializable body,
            a zero-argument callable building a fresh httpx.Response, or an
            exception instance to raise.
    Unknown paths return 404. Every requested path is recorded in `requests`.
    """

    def __init__(self, routes: Dict[str, Any]):
        self.routes = routes
        self.requests: List[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        # sub_paths carry spaces and "@", which httpx percent-encodes
        path = unquote(url[len(PROFILE_ROOT):]) if url.startswith(PROFILE_ROOT) else url
        self.requests.append(path)

        if path not in self.routes:
            return httpx.Response(404, text="NoSuchKey")
        body = self.routes[path]
        if isinstance(body, BaseException):
            raise body
        if callable(body):
            return body()
        return httpx.Response(200, json=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def count(self, path: str) -> int:
        return self.requests.count(path)
