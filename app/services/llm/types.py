from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.styling import Attribute


class LLMUsage(BaseModel):
    model: str = ""
    tokens_in: int = 0
    tokens_out: int = 0
    latency_ms: int = 0
    prompt_version: str = "p1"


class ImageInput(BaseModel):
    data: bytes
    content_type: str = "image/jpeg"
    file_name: str = ""
    position: int = 0


class AnalyzeImageOutput(BaseModel):
    attribute: Attribute = Field(default_factory=Attribute)
    usage: LLMUsage = Field(default_factory=LLMUsage)


class RecommendationInput(BaseModel):
    attributes: List[Attribute] = Field(default_factory=list)
    context: str = ""
    prompt_version: str = "p1"


class RecommendationOutput(BaseModel):
    recommendation: str = ""
    selected_items: List[int] = Field(default_factory=list)
    usage: LLMUsage = Field(default_factory=LLMUsage)
    raw: Optional[str] = None
