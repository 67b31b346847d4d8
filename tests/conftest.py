import os
import threading
from pathlib import Path

import pytest

from models import IndexRequest, Item, SearchResponse


def _manual_enabled(config: pytest.Config) -> bool:
    if config.getoption("manual", default=False):
        return True
    env_value = os.environ.get("PYTEST_INCLUDE_MANUAL", "")
    return env_value.lower() in {"1", "true", "yes", "on"}


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("favsearch")
    group.addoption(
        "--manual",
        action="store_true",
        help="Include tests under tests/manual/. They are skipped by default.",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if _manual_enabled(config):
        return

    manual_root = Path(config.rootpath, "tests", "manual").resolve()
    skip_manual = pytest.mark.skip(
        reason="Manual test suite is excluded by default; re-run with --manual or PYTEST_INCLUDE_MANUAL=1."
    )

    for item in items:
        try:
            item_path = Path(str(item.fspath)).resolve()
        except OSError:
            continue
        if manual_root in item_path.parents:
            item.add_marker(skip_manual)


class FakeIndexClient:
    """Stands in for IndexClient; blocking calls can be held open with gates."""

    GATE_TIMEOUT = 5.0

    def __init__(self, *, configured: bool = True):
        self.configured = configured
        self.submitted: list[IndexRequest] = []
        self.searches: list[str] = []
        self.search_results: dict[str, dict[str, list[list[object]]]] = {}
        self.search_errors: dict[str, Exception] = {}
        self.gates: dict[str, threading.Event] = {}
        self.submit_gate: threading.Event | None = None
        self.submit_error: Exception | None = None
        self.closed = False

    def submit_index(self, request: IndexRequest) -> None:
        self.submitted.append(request)
        if self.submit_gate is not None:
            self.submit_gate.wait(self.GATE_TIMEOUT)
        if self.submit_error is not None:
            raise self.submit_error

    def search(self, text, *, models=None, k=None) -> SearchResponse:
        self.searches.append(text)
        gate = self.gates.get(text)
        if gate is not None:
            gate.wait(self.GATE_TIMEOUT)
        if text in self.search_errors:
            raise self.search_errors[text]
        return SearchResponse.model_validate({"results": self.search_results.get(text, {})})

    def close(self) -> None:
        self.closed = True

    def release_all(self) -> None:
        for gate in self.gates.values():
            gate.set()
        if self.submit_gate is not None:
            self.submit_gate.set()


def make_item(name: str, host: str = "media.tenor.co", **kwargs) -> Item:
    return Item(id=f"https://tenor.com/view/{name}", locator=f"https://{host}/m/{name}.gif", **kwargs)


@pytest.fixture
def fake_client():
    client = FakeIndexClient()
    yield client
    client.release_all()


@pytest.fixture
def gifs() -> list[Item]:
    return [make_item(name, order=i) for i, name in enumerate(["cat", "dog", "fox"])]


@pytest.fixture
def make_gif():
    return make_item


@pytest.fixture
def unconfigured_client():
    return FakeIndexClient(configured=False)
