import asyncio
import json

import httpx
import pytest

from app.client.analysis import STYLIST_MESSAGE, VISION_MESSAGE, BackendClient
from app.client.results import CURRENT_RESULT_KEY
from app.core.errors import NoClothingDetected, RemoteCallFailed
from conftest import FakeProvider, UnreachableCache, image_file

NOT_CLOTHING = {"isClothing": False, "name": "None", "confidence": 0.0}


async def _ready_upload(styling, names, context="nyc brunch"):
    await styling.start("/")
    await styling.upload.add_files([image_file(n) for n in names])
    styling.upload.set_custom_context(context)


@pytest.mark.asyncio
async def test_upload_flow_presents_aligned_result(make_app, use_provider, session_kv):
    names = ["jacket.png", "jeans.png", "boots.png"]
    prov = use_provider(FakeProvider(delays={"jacket.png": 0.03, "jeans.png": 0.01}, selected=[2, 0]))
    styling = make_app()
    await _ready_upload(styling, names)

    result = await styling.upload.submit()

    assert result is not None
    assert [a.name for a in result.attributes] == names
    assert result.images == [u.data_url for u in styling.session.uploads]
    assert result.selected_items == [2, 0]
    assert result.context == "NYC Brunch"
    assert result.timestamp.endswith("Z") and len(result.timestamp) == 24
    assert prov.recommend_calls[0].context == "NYC Brunch"

    assert styling.session.current_result is result
    assert styling.session.is_from_history is False
    assert styling.session.analysis_source == "upload"
    assert styling.session.loading.visible is False
    assert styling.navigation.active_view == "results"
    assert styling.navigation.browser.location == "/results"
    assert json.loads(await session_kv.get(CURRENT_RESULT_KEY))["timestamp"] == result.timestamp


@pytest.mark.asyncio
async def test_loading_messages_follow_the_two_phases(make_app, use_provider):
    styling = make_app()
    seen = []

    class Recording(FakeProvider):
        async def analyze_image(self, image, *, timeout_ms):
            seen.append(styling.session.loading.message)
            return await super().analyze_image(image, timeout_ms=timeout_ms)

        async def recommend(self, payload, *, timeout_ms):
            seen.append(styling.session.loading.message)
            return await super().recommend(payload, timeout_ms=timeout_ms)

    use_provider(Recording())
    await _ready_upload(styling, ["a.png"])
    await styling.upload.submit()
    assert seen == [VISION_MESSAGE, STYLIST_MESSAGE]


@pytest.mark.asyncio
async def test_no_clothing_never_asks_for_a_recommendation(make_app, use_provider):
    prov = use_provider(FakeProvider(attributes={"cat.png": NOT_CLOTHING, "dog.png": NOT_CLOTHING}))
    styling = make_app()
    await _ready_upload(styling, ["cat.png", "dog.png"])

    assert await styling.upload.submit() is None
    assert prov.recommend_calls == []
    assert isinstance(styling.orchestrator.last_error, NoClothingDetected)
    notice = styling.notifier.current
    assert notice.title == "Analysis failed"
    assert "No clothing items detected" in notice.message
    assert styling.session.loading.visible is False
    assert styling.session.form_visible
    assert styling.navigation.active_view == "upload"


@pytest.mark.asyncio
async def test_some_clothing_is_enough(make_app, use_provider):
    prov = use_provider(FakeProvider(attributes={"cat.png": NOT_CLOTHING}))
    styling = make_app()
    await _ready_upload(styling, ["cat.png", "shirt.png"])
    result = await styling.upload.submit()
    assert result.non_clothing_count == 1
    assert len(prov.recommend_calls) == 1


@pytest.mark.asyncio
async def test_server_message_is_surfaced_verbatim(make_app, use_provider):
    use_provider(FakeProvider(fail_with="model overloaded, retry later"))
    styling = make_app()
    await _ready_upload(styling, ["a.png"])

    assert await styling.upload.submit() is None
    err = styling.orchestrator.last_error
    assert isinstance(err, RemoteCallFailed)
    assert err.phase == "recommendation"
    assert err.status == 500
    assert str(err) == "LLM recommendation failed: model overloaded, retry later"
    assert "model overloaded, retry later" in styling.notifier.current.message
    assert "Server error" in styling.notifier.current.message


@pytest.mark.asyncio
async def test_vision_failure(make_app, use_provider):
    class Broken(FakeProvider):
        async def analyze_image(self, image, *, timeout_ms):
            raise RuntimeError("vision down")

    prov = use_provider(Broken())
    styling = make_app()
    await _ready_upload(styling, ["a.png"])

    assert await styling.upload.submit() is None
    assert str(styling.orchestrator.last_error) == "Vision model analysis failed"
    assert prov.recommend_calls == []


@pytest.mark.asyncio
async def test_result_arriving_after_view_change_is_dropped(make_app, use_provider):
    use_provider(FakeProvider(delays={"slow.png": 0.2}))
    styling = make_app()
    await _ready_upload(styling, ["slow.png"])

    task = asyncio.create_task(styling.upload.submit())
    await asyncio.sleep(0.05)
    await styling.navigation.switch_view("history", update_url=True)

    assert await task is None
    assert styling.session.current_result is None
    assert styling.navigation.active_view == "history"
    assert styling.notifier.current is None
    assert not styling.session.loading.visible

    await styling.navigation.switch_view("upload", update_url=True)
    assert styling.session.form_visible


@pytest.mark.asyncio
async def test_unreachable_session_cache_does_not_break_presenting(make_app, provider):
    styling = make_app(session_kv=UnreachableCache())
    await _ready_upload(styling, ["jacket.png"])

    result = await styling.upload.submit()

    assert result is not None
    assert styling.navigation.active_view == "results"
    assert not styling.session.loading.visible
    assert styling.results.render().heading == "NYC Brunch Style Recommendation"


@pytest.mark.asyncio
async def test_analysis_request_carries_context(make_app):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        body = request.read()
        seen[request.url.path] = body
        if request.url.path.endswith("/analyze-images"):
            attr = {"isClothing": True, "name": "Blazer", "confidence": 0.9, "imageIndex": 0}
            return httpx.Response(200, json={"success": True, "attributes": [attr], "count": 1})
        return httpx.Response(200, json={"success": True, "recommendation": "Wear it.", "selectedItems": [0]})

    styling = make_app()
    await styling.api.aclose()
    styling.api = styling.orchestrator.api = BackendClient(
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test/api")
    )
    await _ready_upload(styling, ["blazer.png"], context="date night")

    assert await styling.upload.submit() is not None
    body = seen["/api/analyze-images"]
    assert b'name="context"' in body
    assert b"Date Night" in body
    assert b'filename="0__blazer.png"' in body
