import pytest
from httpx import ASGITransport, AsyncClient

from fakes import FakeClock, FakeGraphRepo, FakeOrderRepo, FakeProductRepo, FakeRedis
from storefront.core.config import Settings
from storefront.core.lifespan import build_services
from storefront.domain.services.cache_store import CacheStore
from storefront.domain.services.graph_svc import GraphEngine


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def redis(clock):
    return FakeRedis(clock)


@pytest.fixture
def cache(redis):
    return CacheStore(redis)


@pytest.fixture
def product_repo():
    return FakeProductRepo()


@pytest.fixture
def order_repo():
    return FakeOrderRepo()


@pytest.fixture
def graph_repo():
    return FakeGraphRepo()


@pytest.fixture
def graph(graph_repo):
    return GraphEngine(graph_repo, timeout_s=0.5)


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def services(settings, product_repo, order_repo, redis, graph_repo):
    return build_services(settings, product_repo, order_repo, redis, graph_repo)


@pytest.fixture
async def client(services):
    """HTTP client over the real app, with in-memory backends injected instead of the lifespan."""
    from storefront.main import app

    app.state.services = services
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
