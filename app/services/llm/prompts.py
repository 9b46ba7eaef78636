from __future__ import annotations

from typing import Any, Dict, List

from app.schemas.styling import Attribute
from app.services.llm.types import RecommendationInput


PROMPT_VERSION = "p1"

STYLE_CATEGORIES = "casual | formal | business | athletic | streetwear | evening | loungewear"

VISION_SYS = "You are a fashion classifier. Return JSON only, no extra text."

STYLIST_SYS = (
    "You are a professional fashion stylist. Follow the requested output format exactly."
)

SECTION_HEADERS = (
    "Overall Assessment",
    "Why These Pieces Work",
    "Outfit Combinations",
    "Additional Styling Tips",
)


def build_vision_prompt(position: int) -> str:
    return (
        f"You are given a **single** image (Image {position + 1}).\n"
        "First, determine if this image contains a clothing item, footwear, or fashion accessory "
        "(like bags, hats, scarves, jewelry).\n\n"
        "Return a **single JSON object** with this exact structure:\n\n"
        "{\n"
        '  "isClothing": true,\n'
        '  "name": "short, specific garment name",\n'
        '  "color": "primary visible color",\n'
        '  "texture": "main material or texture",\n'
        f'  "category": "style category ({STYLE_CATEGORIES})",\n'
        '  "confidence": 0.0\n'
        "}\n\n"
        "Rules:\n"
        '- Set "isClothing" to true ONLY if the image shows clothing, footwear, or fashion accessories.\n'
        '- Set "isClothing" to false for vehicles, animals, food, buildings, landscapes, electronics, '
        "furniture, people without clear focus on their clothing, or any other non-fashion item.\n"
        '- If "isClothing" is false, set name to "None", color to "N/a", texture to "N/a", '
        'category to "N/A", and confidence to 0.\n'
        "- Only describe THIS image, not any others.\n"
        "- Pick one dominant garment (e.g., if it shows a blazer and pants, describe the blazer).\n"
        '- "confidence" must be a number between 0 and 1.\n'
        "- Return **JSON only**, no extra text."
    )


def build_vision_messages(position: int, data_url: str) -> List[Dict[str, Any]]:
    return [
        {"role": "system", "content": VISION_SYS},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": build_vision_prompt(position)},
                {"type": "image_url", "image_url": {"url": data_url}},
            ],
        },
    ]


def _attribute_line(idx: int, attr: Attribute) -> str:
    return f"[{idx}] {attr.name} - Color: {attr.color}, Texture: {attr.texture}, Category: {attr.category}"


def build_recommendation_prompt(payload: RecommendationInput) -> List[Dict[str, str]]:
    items = "\n".join(_attribute_line(i, a) for i, a in enumerate(payload.attributes))
    headers = "\n".join(f"**{h}**" for h in SECTION_HEADERS)
    user = (
        f"I have the following clothing items:\n{items}\n\n"
        f"The occasion/context is: {payload.context}\n\n"
        "Please analyze and provide a response in TWO parts:\n\n"
        "PART 1 - Selected Items (JSON format):\n"
        "Return a JSON array of item indices (the numbers in brackets like [0], [1], etc.) "
        "that are appropriate for this occasion.\nExample: [0, 2, 3]\n\n"
        "PART 2 - Style Recommendation (text):\n"
        "Provide a detailed style assessment organized into these EXACT subsections:\n"
        f"{headers}\n\n"
        'Never refer to items as "Item 0", "Item 1" and so on. Refer to items only by their '
        'descriptive names in Title Case, like "Navy Straight-leg Trousers".\n\n'
        "Under Why These Pieces Work, use bullet points with the item name in bold followed by a colon.\n"
        "Under Outfit Combinations, give 2-3 numbered combinations, each with a creative bold name.\n"
        "Under Additional Styling Tips, group tips by bold category headers "
        "(Tops, Footwear, Accessories, Layering).\n\n"
        "Format your response exactly as:\n"
        "SELECTED_ITEMS: [array of indices]\n"
        "RECOMMENDATION: your text here\n\n"
        "Keep the recommendation natural, friendly, and conversational. Make sure to include all "
        "four subsection headers in bold (wrapped in **)."
    )
    return [
        {"role": "system", "content": STYLIST_SYS},
        {"role": "user", "content": user},
    ]
