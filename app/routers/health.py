from fastapi import APIRouter

from app.core.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    return {"status": "ok", "message": "Fashion Sense API is running", "demo_mode": settings.demo_mode}
