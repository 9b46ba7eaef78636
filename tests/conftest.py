import asyncio
from typing import Dict, List, Optional

import httpx
import pytest
from asgi_lifespan import LifespanManager
from redis.exceptions import ConnectionError as RedisConnectionError

from app.client.analysis import BackendClient
from app.client.bootstrap import StylingApp
from app.client.navigation import BrowserHistory
from app.client.types import ClientFile
from app.core.cache import InMemoryKeyValueStore
from app.main import app
from app.schemas.styling import Attribute
from app.services import llm as llm_service
from app.services.llm.types import (
    AnalyzeImageOutput,
    ImageInput,
    RecommendationInput,
    RecommendationOutput,
)
from app.services.ordering import strip_tag
from app.store.local_store import LocalStore

API_BASE = "http://test"


class FakeProvider:
    """Describes each image by its (untagged) file name; ``delays`` reorder completions."""

    name = "fake"

    def __init__(
        self,
        attributes: Optional[Dict[str, dict]] = None,
        delays: Optional[Dict[str, float]] = None,
        selected: Optional[List[int]] = None,
        recommendation: str = "**Overall Assessment**\n\nWear the jacket.",
        fail_with: Optional[str] = None,
    ):
        self.attributes = attributes or {}
        self.delays = delays or {}
        self.selected = selected if selected is not None else [0]
        self.recommendation = recommendation
        self.fail_with = fail_with
        self.analyzed: List[str] = []
        self.recommend_calls: List[RecommendationInput] = []

    async def analyze_image(self, image: ImageInput, *, timeout_ms: int) -> AnalyzeImageOutput:
        name = strip_tag(image.file_name)
        await asyncio.sleep(self.delays.get(name, 0))
        self.analyzed.append(name)
        data = self.attributes.get(
            name,
            {"isClothing": True, "name": name, "color": "Black", "texture": "Cotton", "category": "Casual", "confidence": 0.9},
        )
        return AnalyzeImageOutput(attribute=Attribute.model_validate(data))

    async def recommend(self, payload: RecommendationInput, *, timeout_ms: int) -> RecommendationOutput:
        self.recommend_calls.append(payload)
        if self.fail_with:
            raise RuntimeError(self.fail_with)
        return RecommendationOutput(recommendation=self.recommendation, selected_items=list(self.selected))


class UnreachableCache:
    """Flat storage whose backend is down."""

    async def get(self, key):
        raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    async def set(self, key, value):
        raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    async def remove(self, key):
        raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")


def image_file(name: str, payload: bytes = b"img") -> ClientFile:
    return ClientFile(name=name, content_type="image/png", data=payload + name.encode())


@pytest.fixture(autouse=True)
def reset_provider():
    yield
    llm_service.set_provider(None)


@pytest.fixture
def provider():
    prov = FakeProvider()
    llm_service.set_provider(prov)
    return prov


@pytest.fixture
def use_provider():
    def _use(prov: FakeProvider) -> FakeProvider:
        llm_service.set_provider(prov)
        return prov

    return _use


@pytest.fixture
async def client():
    async with LifespanManager(app):
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=API_BASE) as ac:
            yield ac


@pytest.fixture
def store_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'fashion_sense.db'}"


@pytest.fixture
async def store(store_url):
    s = LocalStore(store_url)
    await s.open()
    yield s
    await s.close()


@pytest.fixture
def local_kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def session_kv():
    return InMemoryKeyValueStore()


@pytest.fixture
async def make_app(store_url, local_kv, session_kv):
    """Build a client session talking to the in-process API; started apps are closed afterwards."""
    created: List[StylingApp] = []

    def _make(store: Optional[LocalStore] = None, path: str = "/", reader=None, **kv) -> StylingApp:
        http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=f"{API_BASE}/api")
        styling = StylingApp(
            store=store or LocalStore(store_url),
            local_kv=kv.get("local_kv", local_kv),
            session_kv=kv.get("session_kv", session_kv),
            api=BackendClient(client=http),
            browser=BrowserHistory(path),
            reader=reader,
        )
        created.append(styling)
        return styling

    yield _make
    for styling in created:
        await styling.aclose()
