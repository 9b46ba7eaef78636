from __future__ import annotations

import logging
from typing import List, Sequence

from app.core.config import settings
from app.schemas.styling import Attribute
from app.services.llm.providers.base import DemoProvider, LLMProvider
from app.services.llm.providers.openai import OpenAIProvider
from app.services.llm.prompts import PROMPT_VERSION
from app.services.llm.types import ImageInput, RecommendationInput, RecommendationOutput
from app.services.ordering import gather_in_position_order

logger = logging.getLogger("uvicorn.error")

_provider: LLMProvider | None = None


def _get_provider() -> LLMProvider:
    global _provider
    if _provider:
        return _provider
    if settings.demo_mode:
        logger.info("llm: running in demo mode, serving mock data")
        _provider = DemoProvider()
        return _provider
    _provider = OpenAIProvider(
        settings.LLM_MODEL_VISION,
        settings.LLM_MODEL_TEXT,
        api_key=settings.OPENAI_API_KEY,
        retries=settings.LLM_RETRIES,
        backoff_s=settings.LLM_RETRY_BACKOFF_S,
    )
    return _provider


def set_provider(provider: LLMProvider | None) -> None:
    """Swap the active provider; ``None`` re-resolves it from settings on next use."""
    global _provider
    _provider = provider


async def analyze_images(images: Sequence[ImageInput]) -> List[Attribute]:
    """Analyze each image concurrently; the output list follows image position."""
    provider = _get_provider()

    async def _one(image: ImageInput, position: int) -> Attribute:
        image.position = position
        out = await provider.analyze_image(image, timeout_ms=settings.LLM_TIMEOUT_MS)
        attr = out.attribute
        attr.image_index = position
        logger.info(
            "llm:analyze image=%s clothing=%s model=%s latency_ms=%s",
            position + 1,
            attr.is_clothing,
            out.usage.model,
            out.usage.latency_ms,
        )
        return attr

    attributes = await gather_in_position_order(list(images), _one)
    attributes.sort(key=lambda a: a.image_index if a.image_index is not None else 0)
    return attributes


async def recommend(payload: RecommendationInput) -> RecommendationOutput:
    payload.prompt_version = payload.prompt_version or PROMPT_VERSION
    provider = _get_provider()
    out = await provider.recommend(payload, timeout_ms=settings.LLM_TIMEOUT_MS)
    total = len(payload.attributes)
    out.selected_items = [i for i in out.selected_items if 0 <= i < total]
    logger.info(
        "llm:recommend context=%s items=%s selected=%s model=%s",
        payload.context,
        total,
        len(out.selected_items),
        out.usage.model,
    )
    return out
