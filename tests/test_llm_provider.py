import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest

from app.schemas.styling import Attribute
from app.services.llm.providers.openai import (
    OpenAIProvider,
    _safe_parse_attribute,
    _safe_parse_recommendation,
)
from app.services.llm.types import ImageInput


def test_parse_attribute_plain_json():
    attr = _safe_parse_attribute(
        '{"isClothing": true, "name": "Red Dress", "color": "Red", "texture": "Silk", "category": "Formal", "confidence": 0.93}',
        2,
    )
    assert attr.is_clothing is True
    assert attr.name == "Red Dress"
    assert attr.image_index == 2


def test_parse_attribute_embedded_in_prose():
    raw = 'Sure! Here it is: {"isClothing": true, "name": "Boots", "confidence": 0.7} Hope that helps.'
    attr = _safe_parse_attribute(raw, 0)
    assert attr.name == "Boots"
    assert attr.is_clothing is True


def test_parse_attribute_garbage_is_neutral():
    attr = _safe_parse_attribute("I cannot see an image.", 4)
    assert attr == Attribute(imageIndex=4)
    assert attr.is_clothing is False
    assert (attr.name, attr.color, attr.texture, attr.category, attr.confidence) == ("None", "N/a", "N/a", "N/A", 0.0)


@pytest.mark.parametrize(
    "payload,expected",
    [
        ('{"name": "Scarf", "confidence": 0.6}', True),
        ('{"name": "Unknown", "confidence": 0.6}', False),
        ('{"name": "Scarf", "confidence": 0.1}', False),
        ('{"name": "None", "confidence": 0.9}', False),
    ],
)
def test_missing_is_clothing_is_inferred(payload, expected):
    assert _safe_parse_attribute(payload, 0).is_clothing is expected


def test_confidence_is_clamped():
    assert _safe_parse_attribute('{"isClothing": true, "name": "Hat", "confidence": 3}', 0).confidence == 1.0


def test_parse_recommendation_markers():
    raw = "SELECTED_ITEMS: [0, 2, 9]\nRECOMMENDATION: **Overall Assessment**\nLooks great."
    selected, text = _safe_parse_recommendation(raw, 3)
    assert selected == [0, 2]
    assert text.startswith("**Overall Assessment**")


def test_parse_recommendation_without_selection_selects_all():
    selected, text = _safe_parse_recommendation("Just wear everything.", 3)
    assert selected == [0, 1, 2]
    assert text == "Just wear everything."


class _FlakyCompletions:
    def __init__(self, failures: int, content: str):
        self.failures = failures
        self.content = content
        self.calls = 0

    async def create(self, **kwargs):
        self.calls += 1
        if self.calls <= self.failures:
            raise openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))],
            usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5),
        )


def _provider(completions, retries=2):
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAIProvider("vision-model", "text-model", retries=retries, backoff_s=0, client=client)


@pytest.mark.asyncio
async def test_vision_call_retries_transient_errors():
    completions = _FlakyCompletions(2, '{"isClothing": true, "name": "Coat", "confidence": 0.8}')
    out = await _provider(completions).analyze_image(ImageInput(data=b"x", position=1), timeout_ms=1000)
    assert completions.calls == 3
    assert out.attribute.name == "Coat"
    assert out.attribute.image_index == 1
    assert out.usage.tokens_in == 10


@pytest.mark.asyncio
async def test_vision_call_gives_neutral_attribute_when_retries_run_out():
    completions = _FlakyCompletions(5, "{}")
    out = await _provider(completions, retries=1).analyze_image(ImageInput(data=b"x", position=3), timeout_ms=1000)
    assert completions.calls == 2
    assert out.attribute == Attribute(imageIndex=3)


@pytest.mark.asyncio
async def test_vision_timeout_counts_as_transient():
    class Slow:
        calls = 0

        async def create(self, **kwargs):
            Slow.calls += 1
            await asyncio.sleep(1)

    out = await _provider(Slow(), retries=0).analyze_image(ImageInput(data=b"x"), timeout_ms=10)
    assert Slow.calls == 1
    assert out.attribute.is_clothing is False
