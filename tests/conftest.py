"""
Shared pytest fixtures: a throwaway HTTP server built with aiohttp.web.
"""

from contextlib import asynccontextmanager

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer


@asynccontextmanager
async def _serve(routes):
    """
    Starts a local HTTP server for the duration of the block.

    Args:
        routes: Mapping of path -> aiohttp handler (GET only).
    """
    application = web.Application()
    for path, handler in routes.items():
        application.router.add_get(path, handler)
    server = TestServer(application)
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()


@pytest.fixture
def serve():
    return _serve


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Runs the test inside an empty working directory, restored afterwards."""
    monkeypatch.chdir(tmp_path)
    return tmp_path
