import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from app.core.config import settings
from app.routers import analysis, health

logger = logging.getLogger("app.requests")


@asynccontextmanager
async def lifespan(app: FastAPI):
    mode = "demo" if settings.demo_mode else settings.LLM_PROVIDER
    logging.getLogger("uvicorn.error").info(
        "%s starting env=%s llm=%s prefix=%s", settings.APP_NAME, settings.APP_ENV, mode, settings.API_PREFIX
    )
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# Browsers call the API straight from the page
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.API_PREFIX)
app.include_router(analysis.router, prefix=settings.API_PREFIX)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info("%s %s status=%s %.1fms", request.method, request.url.path, response.status_code, elapsed_ms)
    return response


@app.get("/")
async def root():
    return {"name": settings.APP_NAME, "env": settings.APP_ENV, "demo_mode": settings.demo_mode}
