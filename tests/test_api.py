import random

import pytest

from app.services import llm as llm_service
from app.services.llm.providers.base import DEMO_ITEMS, DemoProvider
from app.services.ordering import tag_filename
from conftest import FakeProvider


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["message"] == "Fashion Sense API is running"


@pytest.mark.asyncio
async def test_analyze_requires_images(client, provider):
    resp = await client.post("/api/analyze-images")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "No images provided"


@pytest.mark.asyncio
async def test_analyze_rejects_too_many_images(client, provider):
    files = [("images", (tag_filename(i, f"{i}.png"), b"x", "image/png")) for i in range(11)]
    resp = await client.post("/api/analyze-images", files=files)
    assert resp.status_code == 400
    assert provider.analyzed == []


@pytest.mark.asyncio
async def test_analyze_restores_selection_order(client, use_provider):
    names = [f"item{i}.png" for i in range(6)]
    # later images finish first
    prov = use_provider(FakeProvider(delays={n: 0.01 * (6 - i) for i, n in enumerate(names)}))
    parts = [("images", (tag_filename(i, n), n.encode(), "image/png")) for i, n in enumerate(names)]
    random.Random(3).shuffle(parts)

    resp = await client.post("/api/analyze-images", files=parts)
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["count"] == 6
    assert [a["name"] for a in data["attributes"]] == names
    assert [a["imageIndex"] for a in data["attributes"]] == list(range(6))
    assert prov.analyzed != names


@pytest.mark.asyncio
async def test_demo_mode_keeps_one_attribute_per_image(client):
    llm_service.set_provider(DemoProvider())
    parts = [("images", (tag_filename(i, f"{i}.jpg"), b"x", "image/jpeg")) for i in range(7)]
    resp = await client.post("/api/analyze-images", files=parts)
    attrs = resp.json()["attributes"]
    assert len(attrs) == 7
    assert attrs[5]["name"] == DEMO_ITEMS[0]["name"]


@pytest.mark.asyncio
async def test_recommendation_requires_attributes_and_context(client, provider):
    resp = await client.post("/api/get-recommendation", json={"attributes": [], "context": "Brunch"})
    assert resp.status_code == 400
    resp = await client.post(
        "/api/get-recommendation",
        json={"attributes": [{"isClothing": True, "name": "Shirt", "confidence": 0.8}], "context": ""},
    )
    assert resp.status_code == 400
    assert provider.recommend_calls == []


@pytest.mark.asyncio
async def test_recommendation_drops_out_of_range_selection(client, use_provider):
    use_provider(FakeProvider(selected=[1, 7, -1]))
    attrs = [{"isClothing": True, "name": n, "confidence": 0.9} for n in ("Shirt", "Jeans")]
    resp = await client.post("/api/get-recommendation", json={"attributes": attrs, "context": "Date Night"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["selectedItems"] == [1]
    assert "Wear the jacket" in data["recommendation"]


@pytest.mark.asyncio
async def test_recommendation_failure_carries_message(client, use_provider):
    use_provider(FakeProvider(fail_with="model overloaded"))
    attrs = [{"isClothing": True, "name": "Shirt", "confidence": 0.9}]
    resp = await client.post("/api/get-recommendation", json={"attributes": attrs, "context": "Brunch"})
    assert resp.status_code == 500
    detail = resp.json()["detail"]
    assert detail == {"error": "Failed to get recommendation", "message": "model overloaded"}
