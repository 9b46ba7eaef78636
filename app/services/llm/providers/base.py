from __future__ import annotations

from typing import List, Protocol

from app.schemas.styling import Attribute
from app.services.llm.types import (
    AnalyzeImageOutput,
    ImageInput,
    LLMUsage,
    RecommendationInput,
    RecommendationOutput,
)


class LLMProvider(Protocol):
    async def analyze_image(self, image: ImageInput, *, timeout_ms: int) -> AnalyzeImageOutput:
        ...

    async def recommend(self, payload: RecommendationInput, *, timeout_ms: int) -> RecommendationOutput:
        ...


DEMO_ITEMS: List[dict] = [
    {"isClothing": True, "name": "Blue Denim Shirt", "color": "Blue", "texture": "Denim", "category": "Casual", "confidence": 0.92},
    {"isClothing": True, "name": "Black Blazer", "color": "Black", "texture": "Wool", "category": "Formal", "confidence": 0.95},
    {"isClothing": True, "name": "White Sneakers", "color": "White", "texture": "Leather", "category": "Athletic", "confidence": 0.88},
    {"isClothing": True, "name": "Khaki Chinos", "color": "Beige", "texture": "Cotton", "category": "Business Casual", "confidence": 0.91},
    {"isClothing": True, "name": "Navy Polo Shirt", "color": "Navy", "texture": "Cotton", "category": "Casual", "confidence": 0.89},
]


def _demo_selection(attributes: List[Attribute], context: str) -> List[int]:
    ctx = context.lower()
    if "formal" in ctx or "office" in ctx:
        wanted = ("formal", "business")
    elif "athletic" in ctx:
        wanted = ("athletic",)
    else:
        wanted = ("casual",)
    selected = [
        idx for idx, attr in enumerate(attributes)
        if attr.is_clothing and any(w in attr.category.lower() for w in wanted)
    ]
    if not selected:
        selected = list(range(min(3, len(attributes))))
    return selected


class DemoProvider:
    """Serves canned attributes and advice when no model API key is configured."""

    name = "demo"

    async def analyze_image(self, image: ImageInput, *, timeout_ms: int) -> AnalyzeImageOutput:
        data = DEMO_ITEMS[image.position % len(DEMO_ITEMS)]
        attr = Attribute.model_validate({"imageIndex": image.position, **data})
        return AnalyzeImageOutput(attribute=attr, usage=LLMUsage(model=self.name))

    async def recommend(self, payload: RecommendationInput, *, timeout_ms: int) -> RecommendationOutput:
        attributes = payload.attributes
        context = payload.context
        selected = _demo_selection(attributes, context)
        names = ", ".join(attributes[i].name for i in selected)
        formal = "formal" in context.lower() or "office" in context.lower()
        mood = (
            "These structured pieces work together for a polished, professional look."
            if formal
            else "These pieces create a comfortable yet stylish look that's perfect for the occasion."
        )
        text = (
            "Style Assessment (DEMO MODE):\n\n"
            "**Overall Assessment**\n\n"
            f"From your wardrobe, I've chosen {names} as the combination for {context}. {mood}\n\n"
            "**Why These Pieces Work**\n\n"
            f"For {context}, these items complement each other in style, color and formality.\n\n"
            "**Outfit Combinations**\n\n"
            "- Combine the selected items for a coordinated look\n"
            "- Layer with complementary accessories\n\n"
            "**Additional Styling Tips**\n\n"
            "- **Accessories:** A quality belt that matches your shoes, and a watch or minimal jewelry\n\n"
            "---\n"
            "This is a demo recommendation. Configure an API key for personalized advice."
        )
        return RecommendationOutput(
            recommendation=text,
            selected_items=selected,
            usage=LLMUsage(model=self.name, prompt_version=payload.prompt_version),
        )
