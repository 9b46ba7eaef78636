from dataclasses import dataclass
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.client.utils import format_item_name
from app.schemas.styling import Attribute
from app.services.images import decode_data_url, to_data_url

DEFAULT_WARDROBE_FILE_NAME = "wardrobe-item.jpg"


class WardrobeItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    id: Optional[int] = None
    image_data: str = Field(alias="imageData")
    file_name: str = Field(DEFAULT_WARDROBE_FILE_NAME, alias="fileName")
    timestamp: str
    order: Optional[int] = None

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class ResultItem:
    """One upload of a result: its attribute, its preview and whether the stylist picked it."""

    index: int
    attribute: Attribute
    image: Optional[str]
    selected: bool

    @property
    def is_clothing(self) -> bool:
        return self.attribute.is_clothing

    @property
    def is_low_confidence(self) -> bool:
        return self.attribute.is_low_confidence

    @property
    def label(self) -> str:
        return format_item_name(self.attribute.name) or f"Item {self.index + 1}"

    @property
    def badge(self) -> str:
        if not self.is_clothing:
            return "Not Clothing"
        return "Selected" if self.selected else "Not for this occasion"


def _display_key(item: ResultItem):
    return (not item.is_clothing, item.is_low_confidence, not item.selected)


class StyleResult(BaseModel):
    """A finished analysis. Saved verbatim as a history entry (keyed by ``timestamp``)."""

    model_config = ConfigDict(populate_by_name=True)
    context: str = ""
    attributes: List[Attribute] = Field(default_factory=list)
    recommendation: str = ""
    selected_items: List[int] = Field(default_factory=list, alias="selectedItems")
    images: List[str] = Field(default_factory=list)
    timestamp: str

    @field_validator("attributes", "selected_items", "images", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    def items(self) -> List[ResultItem]:
        selected = set(self.selected_items)
        count = max(len(self.attributes), len(self.images))
        return [
            ResultItem(
                index=i,
                attribute=self.attributes[i] if i < len(self.attributes) else Attribute(imageIndex=i),
                image=self.images[i] if i < len(self.images) else None,
                selected=i in selected,
            )
            for i in range(count)
        ]

    def display_items(self) -> List[ResultItem]:
        # non-clothing last, low confidence after normal, selected first; stable otherwise
        return sorted(self.items(), key=_display_key)

    @property
    def non_clothing_count(self) -> int:
        return sum(1 for a in self.attributes if not a.is_clothing)

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass
class ClientFile:
    name: str
    content_type: str
    data: bytes

    @classmethod
    def from_data_url(cls, url: str, name: str) -> "ClientFile":
        data, mime = decode_data_url(url)
        return cls(name=name, content_type=mime, data=data)

    def to_data_url(self) -> str:
        return to_data_url(self.data, self.content_type if self.content_type.startswith("image/") else None)


@dataclass(eq=False)
class PendingUpload:
    """A picked file and its preview, kept together so removal never misaligns them.

    Compared by identity: a record that is no longer in the session's upload list is stale.
    """

    file: ClientFile
    data_url: Optional[str] = None
