"""
Shared pytest fixtures for cdn-sync tests.

FakeCdn serves a manifest and files from an in-process aiohttp server and records
every request, so tests can assert exactly what was fetched.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from blake3 import blake3

from cdnsync.cdn.selector import ActiveHost


def blake3_hex(data: bytes) -> str:
    return blake3(data).hexdigest()


@dataclass
class FakeCdn:
    """An in-memory CDN origin."""

    files: dict[str, bytes]
    manifest: list[dict] | None = None
    failures: dict[str, int] = field(default_factory=dict)
    corruptions: dict[str, int] = field(default_factory=dict)
    manifest_status: int = 200
    requests: list[tuple[str, str]] = field(default_factory=list)

    def __post_init__(self):
        if self.manifest is None:
            self.manifest = [
                {"name": name, "size": len(data), "blake3": blake3_hex(data)}
                for name, data in self.files.items()
            ]

    def publish(self, name: str, data: bytes) -> None:
        """Replaces a file and its manifest entry."""
        self.files[name] = data
        self.manifest = [e for e in self.manifest if e["name"] != name]
        self.manifest.append(
            {"name": name, "size": len(data), "blake3": blake3_hex(data)}
        )

    def file_requests(self, name: str) -> list[str]:
        """Query strings of every request made for a file."""
        return [query for path, query in self.requests if path == f"/{name}"]

    async def _manifest(self, request: web.Request) -> web.Response:
        self.requests.append((request.path, request.query_string))
        if self.manifest_status != 200:
            return web.Response(status=self.manifest_status)
        return web.json_response(self.manifest)

    async def _file(self, request: web.Request) -> web.Response:
        self.requests.append((request.path, request.query_string))
        name = request.match_info["name"]
        if name not in self.files:
            return web.Response(status=404)
        if self.failures.get(name, 0) > 0:
            self.failures[name] -= 1
            return web.Response(status=500)
        data = self.files[name]
        if self.corruptions.get(name, 0) > 0:
            self.corruptions[name] -= 1
            data = b"stale edge copy" + data
        return web.Response(body=data)

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/files.json", self._manifest)
        app.router.add_get("/{name:.*}", self._file)
        return app

    @asynccontextmanager
    async def serve(self):
        """Runs the server and yields an ActiveHost pointing at it."""
        async with TestServer(self.app()) as server:
            yield ActiveHost.from_override(str(server.make_url("/")))


@pytest.fixture
def fake_cdn():
    return FakeCdn


@pytest.fixture
def zero_bytes_hash() -> str:
    return blake3_hex(b"\x00" * 10)
