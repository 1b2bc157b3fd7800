from __future__ import annotations

import asyncio
import os
import subprocess
import sys
import time
from typing import Any, Dict, Iterator, List, Tuple

import pytest
import requests

from policyboard.api_client import CancelToken


RUN_E2E = os.environ.get("RUN_E2E", "0").lower() in {"1", "true", "yes"}


def pytest_configure(config):
    config.addinivalue_line("markers", "e2e: mark as end-to-end test")


class FakeBackend:
    """Async transport whose requests settle only when the test says so."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, CancelToken]] = []
        self._pending: Dict[int, asyncio.Future] = {}

    async def fetch(self, resource: str, token: CancelToken) -> Any:
        future = asyncio.get_running_loop().create_future()
        self._pending[len(self.calls)] = future
        self.calls.append((resource, token))
        return await future

    @property
    def resources(self) -> List[str]:
        return [resource for resource, _ in self.calls]

    def resolve(self, index: int, body: Any) -> None:
        future = self._pending[index]
        if not future.done():
            future.set_result(body)

    def fail(self, index: int, exc: Exception) -> None:
        future = self._pending[index]
        if not future.done():
            future.set_exception(exc)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


def _wait_for_health(url: str, timeout: float = 25.0) -> None:
    start = time.time()
    while time.time() - start < timeout:
        try:
            response = requests.get(url, timeout=1.0)
            if response.status_code == 200:
                return
        except requests.RequestException:
            time.sleep(0.5)
    raise RuntimeError(f"Timed out waiting for NiceGUI health endpoint at {url}")


@pytest.fixture(scope="session")
def nicegui_server() -> Iterator[str]:
    if not RUN_E2E:
        pytest.skip("Set RUN_E2E=1 to run Selenium e2e tests")

    port = int(os.environ.get("E2E_APP_PORT", "8090"))

    env = os.environ.copy()
    env.setdefault("PORT", str(port))
    env.setdefault("POLICYBOARD_API_URL", "http://localhost:3001")
    env.setdefault("STORAGE_SECRET", "test-secret")
    env.setdefault("NICEGUI_RELOAD", "0")

    cmd = [sys.executable, "nicegui_app.py"]
    proc = subprocess.Popen(cmd, env=env, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    try:
        _wait_for_health(f"http://localhost:{port}/health")
        yield f"http://localhost:{port}"
    finally:
        proc.terminate()
        try:
            proc.wait(timeout=10)
        except subprocess.TimeoutExpired:
            proc.kill()
