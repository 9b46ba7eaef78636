from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List, Any


class Attribute(BaseModel):
    """One vision-model description per uploaded image.

    The defaults are the neutral "not clothing" attribute substituted whenever a
    model response cannot be parsed.
    """

    model_config = ConfigDict(populate_by_name=True)
    image_index: Optional[int] = Field(None, alias="imageIndex")
    is_clothing: bool = Field(False, alias="isClothing")
    name: str = "None"
    color: str = "N/a"
    texture: str = "N/a"
    category: str = "N/A"
    confidence: float = 0.0

    @field_validator("name", "color", "texture", "category", mode="before")
    @classmethod
    def _none_to_text(cls, v: Any) -> Any:
        return "" if v is None else str(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v: Any) -> float:
        try:
            val = float(v)
        except (TypeError, ValueError):
            return 0.0
        return max(0.0, min(val, 1.0))

    @property
    def is_low_confidence(self) -> bool:
        return self.is_clothing and (
            self.confidence <= 0.1 or self.name in ("Unknown", "Clothing Item")
        )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class AnalyzeImagesOut(BaseModel):
    success: bool = True
    attributes: List[Attribute] = Field(default_factory=list)
    count: int = 0


class RecommendationIn(BaseModel):
    attributes: List[Attribute] = Field(default_factory=list)
    context: str = ""


class RecommendationOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    success: bool = True
    recommendation: str = ""
    selected_items: List[int] = Field(default_factory=list, alias="selectedItems")
