from typing import List, Optional
import logging

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from app.core.config import settings
from app.schemas.styling import AnalyzeImagesOut, RecommendationIn, RecommendationOut
from app.services import llm as llm_service
from app.services.images import sniff_content_type
from app.services.llm.types import ImageInput, RecommendationInput
from app.services.ordering import restore_upload_order

router = APIRouter(tags=["analysis"])
logger = logging.getLogger("uvicorn.error")


async def _read_images(files: List[UploadFile]) -> List[ImageInput]:
    ordered = restore_upload_order(files, lambda f: f.filename)
    images = []
    for position, upload in ordered:
        data = await upload.read()
        if len(data) > settings.MAX_UPLOAD_BYTES:
            raise HTTPException(status_code=413, detail="file_too_large")
        content_type = upload.content_type
        if not content_type or not content_type.startswith("image/"):
            content_type = sniff_content_type(data)
        images.append(
            ImageInput(data=data, content_type=content_type, file_name=upload.filename or "", position=position)
        )
    return images


@router.post("/analyze-images", response_model=AnalyzeImagesOut)
async def analyze_images(
    images: Optional[List[UploadFile]] = File(None),
    context: Optional[str] = Form(None),
):
    if not images:
        raise HTTPException(status_code=400, detail="No images provided")
    if len(images) > settings.MAX_UPLOAD_FILES:
        raise HTTPException(status_code=400, detail="too_many_images")
    ordered = await _read_images(images)
    logger.info("analyze-images count=%s context=%s", len(ordered), context or "")
    try:
        attributes = await llm_service.analyze_images(ordered)
    except Exception as e:
        logger.exception("analyze-images failed")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to analyze images", "message": str(e)},
        ) from e
    return AnalyzeImagesOut(attributes=attributes, count=len(attributes))


@router.post("/get-recommendation", response_model=RecommendationOut)
async def get_recommendation(payload: RecommendationIn):
    if not payload.attributes or not payload.context.strip():
        raise HTTPException(status_code=400, detail="Missing attributes or context")
    logger.info("get-recommendation context=%s", payload.context)
    try:
        out = await llm_service.recommend(
            RecommendationInput(attributes=payload.attributes, context=payload.context)
        )
    except Exception as e:
        logger.exception("get-recommendation failed")
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to get recommendation", "message": str(e)},
        ) from e
    return RecommendationOut(recommendation=out.recommendation, selectedItems=out.selected_items)
