import json
import threading
import zipfile
from pathlib import Path
from typing import Callable, Union

import httpx
import pytest

from aureate_lib.layout import InstanceLayout
from aureate_lib.rules import Platform


Response = Union[bytes, str, dict, list, int, Callable[[httpx.Request], httpx.Response]]


class MockRouter:
    """Serves canned responses by URL and records every request that was made."""

    def __init__(self) -> None:
        self.routes: dict[str, Response] = {}
        self.requests: list[str] = []
        self._lock = threading.Lock()

    def add(self, url: str, response: Response) -> None:
        self.routes[url] = response

    def add_json(self, url: str, document) -> bytes:
        content = json.dumps(document).encode("utf-8")
        self.routes[url] = content
        return content

    def count(self, url: str) -> int:
        return self.requests.count(url)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        with self._lock:
            self.requests.append(url)
        response = self.routes.get(url)
        if response is None:
            return httpx.Response(404, content=b"not found")
        if callable(response):
            return response(request)
        if isinstance(response, int):
            return httpx.Response(response)
        if isinstance(response, (dict, list)):
            return httpx.Response(200, content=json.dumps(response).encode("utf-8"))
        if isinstance(response, str):
            response = response.encode("utf-8")
        return httpx.Response(200, content=response)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler), follow_redirects=True)


def build_zip(path: Path, entries: dict[str, bytes]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return path


@pytest.fixture
def router():
    return MockRouter()


@pytest.fixture
def layout(tmp_path):
    return InstanceLayout(tmp_path / "minecraft")


@pytest.fixture
def linux():
    return Platform("linux", "x86_64")


@pytest.fixture
def write_descriptor(layout):
    """Write a version json into the layout and return its path."""

    def write(data: dict) -> Path:
        path = layout.version_json(data["id"])
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        return path

    return write


@pytest.fixture
def touch(layout):
    """Create a non empty file below the layout root."""

    def create(path: Path, content: bytes = b"x") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    return create


@pytest.fixture
def make_zip():
    return build_zip
