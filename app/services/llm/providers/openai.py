from __future__ import annotations

import asyncio
import json
import re
import time
from typing import Any, Dict, List, Optional, Tuple

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

import logging

from app.schemas.styling import Attribute
from app.services.images import to_data_url
from app.services.llm.prompts import build_recommendation_prompt, build_vision_messages
from app.services.llm.types import (
    AnalyzeImageOutput,
    ImageInput,
    LLMUsage,
    RecommendationInput,
    RecommendationOutput,
)

logger = logging.getLogger("uvicorn.error")

TRANSIENT_ERRORS = (openai.APIConnectionError, openai.APITimeoutError, asyncio.TimeoutError)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_SELECTED = re.compile(r"SELECTED_ITEMS:\s*(\[[\d,\s]*\])")
_RECOMMENDATION = re.compile(r"RECOMMENDATION:\s*([\s\S]*)")


class OpenAIProvider:
    name = "openai"

    def __init__(
        self,
        model_vision: str,
        model_text: str,
        *,
        api_key: Optional[str] = None,
        retries: int = 2,
        backoff_s: float = 1.0,
        client: Optional[Any] = None,
    ):
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.model_vision = model_vision
        self.model_text = model_text
        self.retries = retries
        self.backoff_s = backoff_s

    async def _chat(self, messages: List[Dict[str, Any]], model: str, timeout_ms: int, *, json_mode: bool) -> Dict[str, Any]:
        start = time.perf_counter()
        logger.info("llm:openai request model=%s timeout_ms=%s", model, timeout_ms)
        kwargs: Dict[str, Any] = {"model": model, "messages": messages, "temperature": 0.2}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            resp = await asyncio.wait_for(
                self.client.chat.completions.create(**kwargs),
                timeout=timeout_ms / 1000.0,
            )
        except asyncio.TimeoutError:
            logger.warning("llm:openai timeout model=%s timeout_ms=%s", model, timeout_ms)
            raise
        latency_ms = int((time.perf_counter() - start) * 1000)
        choice = resp.choices[0].message.content if resp.choices else ""
        return {
            "content": choice or "",
            "latency_ms": latency_ms,
            "tokens_in": getattr(resp.usage, "prompt_tokens", 0) if resp.usage else 0,
            "tokens_out": getattr(resp.usage, "completion_tokens", 0) if resp.usage else 0,
        }

    async def analyze_image(self, image: ImageInput, *, timeout_ms: int) -> AnalyzeImageOutput:
        messages = build_vision_messages(image.position, to_data_url(image.data, image.content_type))
        attempts = self.retries + 1
        for attempt in range(attempts):
            try:
                res = await self._chat(messages, self.model_vision, timeout_ms, json_mode=True)
            except TRANSIENT_ERRORS as e:
                if attempt + 1 < attempts:
                    logger.info(
                        "llm:openai retry image=%s attempt=%s reason=%s", image.position + 1, attempt + 1, e
                    )
                    await asyncio.sleep(self.backoff_s * (attempt + 1))
                    continue
                logger.error("llm:openai vision failed image=%s reason=%s", image.position + 1, e)
                return AnalyzeImageOutput(attribute=Attribute(imageIndex=image.position))
            except openai.OpenAIError as e:
                logger.error("llm:openai vision failed image=%s reason=%s", image.position + 1, e)
                return AnalyzeImageOutput(attribute=Attribute(imageIndex=image.position))
            attr = _safe_parse_attribute(res["content"], image.position)
            return AnalyzeImageOutput(
                attribute=attr,
                usage=LLMUsage(
                    model=self.model_vision,
                    tokens_in=res["tokens_in"],
                    tokens_out=res["tokens_out"],
                    latency_ms=res["latency_ms"],
                ),
            )
        return AnalyzeImageOutput(attribute=Attribute(imageIndex=image.position))

    async def recommend(self, payload: RecommendationInput, *, timeout_ms: int) -> RecommendationOutput:
        messages = build_recommendation_prompt(payload)
        res = await self._chat(messages, self.model_text, timeout_ms, json_mode=False)
        selected, text = _safe_parse_recommendation(res["content"], len(payload.attributes))
        return RecommendationOutput(
            recommendation=text,
            selected_items=selected,
            raw=res["content"],
            usage=LLMUsage(
                model=self.model_text,
                tokens_in=res["tokens_in"],
                tokens_out=res["tokens_out"],
                latency_ms=res["latency_ms"],
                prompt_version=payload.prompt_version,
            ),
        )


def _safe_parse_attribute(raw: str, position: int) -> Attribute:
    data: Any = None
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        match = _JSON_OBJECT.search(raw or "")
        if match:
            try:
                data = json.loads(match.group(0))
            except ValueError:
                data = None
    if not isinstance(data, dict):
        logger.info("llm:openai unparseable attribute image=%s", position + 1)
        return Attribute(imageIndex=position)
    if data.get("isClothing") is None:
        try:
            confidence = float(data.get("confidence") or 0)
        except (TypeError, ValueError):
            confidence = 0.0
        data["isClothing"] = confidence > 0.1 and data.get("name") not in ("None", "Unknown")
    data["imageIndex"] = position
    try:
        return Attribute.model_validate(data)
    except ValidationError:
        return Attribute(imageIndex=position)


def _safe_parse_recommendation(raw: str, total_items: int) -> Tuple[List[int], str]:
    text = raw or ""
    selected: List[int] = []
    match = _SELECTED.search(text)
    if match:
        try:
            parsed = json.loads(match.group(1))
            selected = [int(i) for i in parsed if 0 <= int(i) < total_items]
        except (ValueError, TypeError):
            logger.info("llm:openai could not parse selected items, selecting all")
    rec = _RECOMMENDATION.search(text)
    recommendation = rec.group(1).strip() if rec else text
    if not selected:
        selected = list(range(total_items))
    return selected, recommendation
