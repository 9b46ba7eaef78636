import logging
from typing import Awaitable, Callable, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from app.client.state import SessionState
from app.client.types import ClientFile, StyleResult
from app.client.utils import now_iso, to_title_case, with_hint
from app.core.cache import KV_ERRORS
from app.core.config import settings
from app.core.errors import NoClothingDetected, RemoteCallFailed
from app.schemas.styling import AnalyzeImagesOut, Attribute, RecommendationOut
from app.services.notifications.service import NotificationService
from app.services.ordering import tag_filename
from app.store.local_store import STORE_ERRORS

logger = logging.getLogger("app.client.analysis")

VISION_MESSAGE = "Analyzing clothing attributes with vision model..."
STYLIST_MESSAGE = "Getting personalized recommendations from AI..."
FALLBACK_FAILURE = "Check that the server is running and your API key is valid."


def _server_message(resp: httpx.Response) -> str:
    """Best human-readable reason carried by an error response."""
    try:
        data = resp.json()
    except ValueError:
        data = {"error": "Unknown error"}
    body = data.get("detail", data) if isinstance(data, dict) else data
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or resp.reason_phrase
    if isinstance(body, str) and body:
        return body
    return resp.reason_phrase


class BackendClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout_s: Optional[float] = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.CLIENT_API_BASE_URL,
            timeout=timeout_s or settings.CLIENT_TIMEOUT_S,
        )

    async def analyze_images(self, files: Sequence[ClientFile], context: str = "") -> List[Attribute]:
        # names carry the selection index; multipart order is not trusted
        parts = [("images", (tag_filename(i, f.name), f.data, f.content_type)) for i, f in enumerate(files)]
        parts.append(("context", (None, context.encode("utf-8"))))
        resp = await self._client.post("/analyze-images", files=parts)
        if not resp.is_success:
            logger.warning("analyze-images failed status=%s", resp.status_code)
            raise RemoteCallFailed("Vision model analysis failed", phase="analysis", status=resp.status_code)
        return AnalyzeImagesOut.model_validate(resp.json()).attributes

    async def get_recommendation(self, attributes: Sequence[Attribute], context: str) -> RecommendationOut:
        resp = await self._client.post(
            "/get-recommendation",
            json={"attributes": [a.to_wire() for a in attributes], "context": context},
        )
        if not resp.is_success:
            reason = _server_message(resp)
            logger.warning("get-recommendation failed status=%s reason=%s", resp.status_code, reason)
            raise RemoteCallFailed(
                f"LLM recommendation failed: {reason}", phase="recommendation", status=resp.status_code
            )
        return RecommendationOut.model_validate(resp.json())

    async def aclose(self) -> None:
        await self._client.aclose()


class Orchestrator:
    """Runs analysis then recommendation and hands a finished result to ``present``."""

    def __init__(
        self,
        session: SessionState,
        notifier: NotificationService,
        api: BackendClient,
        present: Callable[[], Awaitable[None]],
    ) -> None:
        self.session = session
        self.notifier = notifier
        self.api = api
        self.present = present
        self.last_error: Optional[BaseException] = None

    async def run(self, files: Sequence[ClientFile], images: Sequence[str], raw_context: str) -> Optional[StyleResult]:
        """Returns the presented result, or None when the run failed or was superseded."""
        token = self.session.begin_analysis()
        context = to_title_case(raw_context) or ""
        self.last_error = None
        self.session.loading.show(VISION_MESSAGE)
        try:
            attributes = await self.api.analyze_images(files, context)
            if not self.session.is_current_analysis(token):
                logger.info("analysis superseded after vision step")
                return None
            if not any(a.is_clothing for a in attributes):
                raise NoClothingDetected()

            self.session.loading.show(STYLIST_MESSAGE)
            rec = await self.api.get_recommendation(attributes, context)
            if not self.session.is_current_analysis(token):
                logger.info("analysis superseded after recommendation step")
                return None
        except (RemoteCallFailed, NoClothingDetected, httpx.HTTPError, ValidationError, ValueError) as e:
            if not self.session.is_current_analysis(token):
                logger.info("dropping failure of superseded analysis: %s", e)
                return None
            self.session.finish_analysis(token)
            self.last_error = e
            logger.warning("analysis failed: %s", e)
            self.session.loading.hide()
            self.notifier.error("Analysis failed", with_hint(str(e) or FALLBACK_FAILURE, e), duration_ms=6000)
            return None

        self.session.finish_analysis(token)
        result = StyleResult(
            context=context,
            attributes=attributes,
            recommendation=rec.recommendation,
            selectedItems=rec.selected_items or [],
            images=list(images),
            timestamp=now_iso(),
        )
        self.session.current_result = result
        self.session.is_from_history = False
        logger.info("analysis done source=%s items=%s", self.session.analysis_source, len(attributes))
        try:
            await self.present()
        except KV_ERRORS + STORE_ERRORS as e:
            self.last_error = e
            logger.exception("presenting result failed")
            self.session.loading.hide()
            self.notifier.error("Analysis failed", with_hint("Couldn't show the recommendation.", e), duration_ms=6000)
            return None
        return result
