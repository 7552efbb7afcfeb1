"""
Global pytest fixtures for the Shortlink Platform test suite.

Responsibilities:
    - Provide isolated in-memory Storage, ClickAggregator and ClickDispatcher fixtures
    - Provide a ShorteningService fixture wired to them, with inline click recording
      so analytics assertions need no waiting
    - Provide a fresh FastAPI TestClient via the app factory for integration tests

Why an app factory?
    Using `create_app()` ensures each test gets fresh in-memory state,
    eliminating cross-test flakiness.
"""

import pytest
from fastapi.testclient import TestClient

from main import create_app
from shortlink_platform.analytics.aggregator import ClickAggregator
from shortlink_platform.analytics.dispatcher import ClickDispatcher
from shortlink_platform.manager.code_generator import CodeGenerator
from shortlink_platform.manager.resolver import RedirectResolver
from shortlink_platform.manager.shortening_service import ShorteningService
from shortlink_platform.storage.storage import Storage


@pytest.fixture
def storage() -> Storage:
    """Fresh in-memory storage backend."""
    return Storage()


@pytest.fixture
def aggregator(storage: Storage):
    """Aggregator over the storage fixture; queries run inline (no timeout)."""
    agg = ClickAggregator(storage, timeout=None, retention_days=0)
    yield agg
    agg.close()


@pytest.fixture
def dispatcher(aggregator: ClickAggregator) -> ClickDispatcher:
    """Dispatcher that records clicks on the calling thread."""
    return ClickDispatcher(aggregator, background=False, prune_interval=0)


@pytest.fixture
def generator() -> CodeGenerator:
    return CodeGenerator(length=7, max_attempts=5)


@pytest.fixture
def resolver(storage: Storage, dispatcher: ClickDispatcher):
    res = RedirectResolver(storage, dispatcher=dispatcher, lookup_timeout=2.0)
    yield res
    res.close()


@pytest.fixture
def service(storage, generator, aggregator, dispatcher, resolver):
    """
    ShorteningService wired to the fixtures above.

    Reachability checks are off so no test touches the network.
    """
    svc = ShorteningService(
        storage=storage,
        generator=generator,
        aggregator=aggregator,
        dispatcher=dispatcher,
        resolver=resolver,
        check_reachable=False,
    )
    yield svc
    svc.close()


@pytest.fixture
def client(service: ShorteningService) -> TestClient:
    """
    Fresh TestClient around an app built on the `service` fixture.

    Redirects are not followed so tests can assert on the 302 itself.
    """
    app = create_app(service=service)
    return TestClient(app, follow_redirects=False)
