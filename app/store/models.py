from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Text, JSON
from app.store.db import Base


class WardrobeRecord(Base):
    __tablename__ = "wardrobe"
    __table_args__ = {"sqlite_autoincrement": True}
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    image_data: Mapped[str] = mapped_column(Text)
    file_name: Mapped[str] = mapped_column(String(255), default="wardrobe-item.jpg")
    timestamp: Mapped[str] = mapped_column(String(40))
    order: Mapped[int | None] = mapped_column("order", Integer, nullable=True)


class HistoryRecord(Base):
    __tablename__ = "history"
    timestamp: Mapped[str] = mapped_column(String(40), primary_key=True)
    context: Mapped[str] = mapped_column(Text, default="")
    attributes: Mapped[list] = mapped_column(JSON, default=list)
    recommendation: Mapped[str] = mapped_column(Text, default="")
    selected_items: Mapped[list] = mapped_column(JSON, default=list)
    images: Mapped[list] = mapped_column(JSON, default=list)
