from dataclasses import dataclass, field
from typing import List, Optional

from app.client.types import PendingUpload, StyleResult

MAX_ITEMS = 10

SOURCE_UPLOAD = "upload"
SOURCE_WARDROBE = "wardrobe"
SOURCE_HISTORY = "history"


@dataclass
class LoadingIndicator:
    visible: bool = False
    message: str = ""

    def show(self, message: str = "") -> None:
        self.visible = True
        if message:
            self.message = message

    def hide(self) -> None:
        self.visible = False
        self.message = ""


@dataclass
class SessionState:
    """Ephemeral per-session state. Nothing here survives a restart except via the session cache."""

    uploads: List[PendingUpload] = field(default_factory=list)
    selected_context: Optional[str] = None
    custom_context: str = ""
    selected_wardrobe_items: List[int] = field(default_factory=list)
    wardrobe_context: Optional[str] = None
    wardrobe_custom_context: str = ""
    current_result: Optional[StyleResult] = None
    is_from_history: bool = False
    analysis_source: str = SOURCE_UPLOAD
    used_select_all: bool = False
    loading: LoadingIndicator = field(default_factory=LoadingIndicator)
    _analysis_seq: int = 0
    _active_analysis: Optional[int] = None

    @property
    def upload_context(self) -> str:
        return self.custom_context or self.selected_context or ""

    @property
    def wardrobe_occasion(self) -> str:
        return self.wardrobe_custom_context or self.wardrobe_context or ""

    @property
    def form_visible(self) -> bool:
        return not self.loading.visible

    def holds_upload(self, record: PendingUpload) -> bool:
        return record in self.uploads

    def remove_upload(self, index: int) -> Optional[PendingUpload]:
        if 0 <= index < len(self.uploads):
            return self.uploads.pop(index)
        return None

    def clear_uploads(self) -> None:
        # a fresh list, so reads still in flight for the old records are dropped
        self.uploads = []

    def reset_upload_form(self) -> None:
        self.clear_uploads()
        self.selected_context = None
        self.custom_context = ""

    def clear_wardrobe_context(self) -> None:
        self.wardrobe_context = None
        self.wardrobe_custom_context = ""

    def reset_wardrobe_selection(self) -> None:
        self.selected_wardrobe_items = []
        self.used_select_all = False
        self.clear_wardrobe_context()

    def show_result(self, result: StyleResult, *, from_history: bool, source: Optional[str] = None) -> None:
        self.current_result = result
        self.is_from_history = from_history
        if source is not None:
            self.analysis_source = source

    def begin_analysis(self) -> int:
        self._analysis_seq += 1
        self._active_analysis = self._analysis_seq
        return self._analysis_seq

    def is_current_analysis(self, token: int) -> bool:
        return self._active_analysis == token

    def finish_analysis(self, token: int) -> None:
        if self._active_analysis == token:
            self._active_analysis = None

    def cancel_analysis(self) -> None:
        if self._active_analysis is not None:
            # the abandoned run will never reach its own hide
            self.loading.hide()
        self._active_analysis = None
